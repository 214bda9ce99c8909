"""Data access managers for the desk runtime.

Each module provides async functions that encapsulate CRUD operations
and business logic.  Managers accept ``AsyncSession`` as a parameter
and raise domain exceptions (``pmdesk.desk_runtime.errors``), never
HTTP exceptions -- that translation is the app's exception handler's job.
"""
