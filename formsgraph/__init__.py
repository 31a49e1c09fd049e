"""FormsGraph: static analysis and migration intelligence for Oracle Forms PL/SQL."""

__version__ = "0.3.0"
