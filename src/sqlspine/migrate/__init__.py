"""
sqlspine migration engine.

Reconciles the migrations a source declares with the ones the ledger
table records as applied, plans the steps in between and runs them one
transaction per step.

Modules
-------
ordering   Version-aware identifier ordering
models     Migration, MigrationRecord, PlannedMigration, MigrationStatus
parser     ``-- +migrate`` file format
sources    Memory, directory, package and HTTP sources
ledger     Applied-state table
planner    plan()
executor   MigrationSet, exec(), exec_max(), exec_version()
"""

from sqlspine.migrate.executor import (
    MigrationConfig,
    MigrationSet,
    exec,
    exec_max,
    exec_version,
    get_migration_records,
    plan_migration,
    plan_migration_to_version,
)
from sqlspine.migrate.ledger import DEFAULT_TABLE_NAME, MigrationLedger
from sqlspine.migrate.models import (
    Direction,
    Migration,
    MigrationRecord,
    MigrationStatus,
    PlannedMigration,
)
from sqlspine.migrate.parser import migration_from_text, parse_migration
from sqlspine.migrate.planner import plan
from sqlspine.migrate.sources import (
    FileMigrationSource,
    HttpMigrationSource,
    MemoryMigrationSource,
    PackageMigrationSource,
)

__all__ = [
    "DEFAULT_TABLE_NAME",
    "Direction",
    "FileMigrationSource",
    "HttpMigrationSource",
    "MemoryMigrationSource",
    "Migration",
    "MigrationConfig",
    "MigrationLedger",
    "MigrationRecord",
    "MigrationSet",
    "MigrationStatus",
    "PackageMigrationSource",
    "PlannedMigration",
    "exec",
    "exec_max",
    "exec_version",
    "get_migration_records",
    "migration_from_text",
    "parse_migration",
    "plan",
    "plan_migration",
    "plan_migration_to_version",
]
