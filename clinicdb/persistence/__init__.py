"""
Persistence package: SQL synthesis, row mapping and the generic repository.

Nothing here opens connections; callers hand an open connection to
``EntityRepository`` or ``RepositoryFactory``.
"""

from clinicdb.persistence.dialect import POSTGRES, SQLITE, Dialect, dialect_for
from clinicdb.persistence.factory import RepositoryFactory
from clinicdb.persistence.query_builder import FilterClause, QueryBuilder, Statement
from clinicdb.persistence.repository import EntityRepository
from clinicdb.persistence.row_mapper import RowMapper

__all__ = [
    "POSTGRES",
    "SQLITE",
    "Dialect",
    "dialect_for",
    "EntityRepository",
    "FilterClause",
    "QueryBuilder",
    "RepositoryFactory",
    "RowMapper",
    "Statement",
]
