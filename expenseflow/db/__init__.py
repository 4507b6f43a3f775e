"""Persistence layer for ExpenseFlow."""
