"""
Gildhall Economy Test Suite
===========================

Test Organization
-----------------
- tests/unit/          : Fast tests with mocks (no database)
- tests/integration/   : Services against a real database (SQLite file, or
                         PostgreSQL via testcontainers when RUN_POSTGRES_TESTS=1)

Testing Philosophy
------------------
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
