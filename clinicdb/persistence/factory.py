"""
Repository factory: one cached repository per entity descriptor.

UI glue and the CLI resolve repositories here instead of constructing them, so
every list view sharing a connection also shares the same repository object.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from clinicdb.domain.clinic import clinic_descriptors
from clinicdb.domain.entity import EntityDescriptor
from clinicdb.persistence.dialect import POSTGRES, Dialect
from clinicdb.persistence.repository import EntityRepository


class RepositoryFactory:
    def __init__(
        self,
        connection: Any,
        dialect: Dialect = POSTGRES,
        descriptors: Optional[Mapping[str, EntityDescriptor]] = None,
    ) -> None:
        self.connection = connection
        self.dialect = dialect
        self._descriptors = dict(descriptors if descriptors is not None else clinic_descriptors())
        self._repositories: Dict[str, EntityRepository[Any]] = {}

    def available(self) -> List[str]:
        """List registered entity names."""
        return sorted(self._descriptors)

    def get(self, descriptor: EntityDescriptor) -> EntityRepository[Any]:
        repository = self._repositories.get(descriptor.table)
        if repository is None:
            repository = EntityRepository(self.connection, descriptor, self.dialect)
            self._repositories[descriptor.table] = repository
        return repository

    def for_name(self, name: str) -> EntityRepository[Any]:
        key = name.strip().lower()
        if key not in self._descriptors:
            raise ValueError(f"Unknown entity '{name}'. Available: {', '.join(self.available())}")
        return self.get(self._descriptors[key])


__all__ = ["RepositoryFactory"]
