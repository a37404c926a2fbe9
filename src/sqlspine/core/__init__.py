"""sqlspine core primitives.

Infrastructure shared by the migration engine and the CLI.

Modules
-------
errors        Typed error hierarchy (PlanError, StatementError, ...)
dialect       Ledger DDL and identifier quoting per database
protocols     Connection and MigrationSource capabilities
connection    create_connection() URL factory
sqlite_conn   SQLite adapter with explicit transactions
sa_bridge     SQLAlchemy session adapter for server databases
settings      MigrateSettings (pydantic-settings + dbconfig.yml)
logging       structlog configuration
deadline      Run deadlines and cancellation checks
"""
