"""Regenesis surgery: rewrite a legacy chain state dump into genesis form."""

__version__ = "0.1.0"
