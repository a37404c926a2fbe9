"""
sqlspine - SQL schema migrations.

Packages:
- sqlspine.core: Connections, dialects, errors, settings, logging
- sqlspine.migrate: Sources, parser, planner, ledger and executor
- sqlspine.cli: The ``sqlspine`` command
"""

__version__ = "0.1.0"
