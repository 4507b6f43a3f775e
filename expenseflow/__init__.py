"""ExpenseFlow: multi-stage approval workflow for expense claims and purchase orders."""

__version__ = "0.1.0"
