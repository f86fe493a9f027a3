"""Bookstore service: account registration, login and token-guarded book writes."""
