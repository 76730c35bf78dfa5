"""mdcrules - rule-matching and action-dispatch engine for assistant rule documents."""

__version__ = "0.1.0"
