"""
clinicdb - generic data-access layer of the clinic desktop application.

Turns declared entity shapes into SQL, executes it on a single synchronous
connection, and rebuilds entities from result rows:

- Entity descriptors: table, columns, typed accessors and child relations
- Pagination state with sort order and page count
- Query builder emitting parameterized SQL for PostgreSQL or SQLite
- Row mapper with strict per-kind type checks
- Generic repository with CRUD, paging, search and two-table joins
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from clinicdb.config import Settings, get_settings
from clinicdb.domain.entity import (
    Entity,
    EntityDescriptor,
    FieldBinding,
    FieldKind,
    Relation,
    normalize_field_name,
)
from clinicdb.domain.pagination import Pagination, SortOrder
from clinicdb.errors import (
    ClinicDbError,
    DatabaseConnectionError,
    DescriptorError,
    InvalidStateError,
    MappingError,
    QueryError,
)
from clinicdb.persistence import (
    POSTGRES,
    SQLITE,
    EntityRepository,
    FilterClause,
    QueryBuilder,
    RepositoryFactory,
    RowMapper,
)
from clinicdb.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Entities
    "Entity",
    "EntityDescriptor",
    "FieldBinding",
    "FieldKind",
    "Relation",
    "normalize_field_name",
    "Pagination",
    "SortOrder",
    # Persistence
    "POSTGRES",
    "SQLITE",
    "EntityRepository",
    "FilterClause",
    "QueryBuilder",
    "RepositoryFactory",
    "RowMapper",
    # Errors
    "ClinicDbError",
    "DatabaseConnectionError",
    "DescriptorError",
    "InvalidStateError",
    "MappingError",
    "QueryError",
    # Logging
    "configure_logging",
    "get_logger",
]
