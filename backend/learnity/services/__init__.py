"""
Business logic for Learnity.

Service modules are plain functions taking a SQLAlchemy session as their
first argument. They raise ``learnity.core.errors.APIError`` subclasses
for domain failures and leave committing to the caller unless stated
otherwise.
"""
