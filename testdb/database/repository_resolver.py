"""
Repository resolution.

Locates the data-access handler for a logical entity name. Candidate modules
follow a naming convention:

    <base_package>.<entity>_repository
    <base_package>.<entity>_repository_ee
    <modules_package>.<extension>.database.repositories.<entity>_repository
    <modules_package>.<extension>.database.repositories.<entity>_repository_ee

with one pair per loaded extension, in load order. Each candidate listed later
overrides the ones before it, so resolution walks the list from the end and
the first module that exists and defines ``<Entity>Repository`` wins.
"""

import importlib
import logging
import re
from types import ModuleType
from typing import Dict, List, Optional, Sequence, Tuple, Type

from testdb.container import Container
from testdb.database.repositories.base import Repository

logger = logging.getLogger(__name__)

BASE_PACKAGE = "testdb.database.repositories"
MODULES_PACKAGE = "testdb.modules"


class ResolutionError(Exception):
    """Raised when no candidate module provides a repository for an entity."""

    def __init__(self, entity_name: str, candidates: Sequence[str]):
        self.entity_name = entity_name
        self.candidates = list(candidates)
        super().__init__(
            f"No repository found for entity '{entity_name}'. Tried: {', '.join(self.candidates)}"
        )


def snake_case(name: str) -> str:
    """``ExecutionAnnotation`` -> ``execution_annotation``."""
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    return name.replace("-", "_").lower()


class RepositoryResolver:
    """Maps entity names to repository instances from the container."""

    def __init__(
        self,
        container: Container,
        base_package: str = BASE_PACKAGE,
        modules_package: str = MODULES_PACKAGE
    ):
        self._container = container
        self.base_package = base_package
        self.modules_package = modules_package
        self._resolved: Dict[Tuple[str, Tuple[str, ...]], Type[Repository]] = {}

    def candidate_paths(self, entity_name: str, loaded_extensions: Sequence[str] = ()) -> List[str]:
        """Candidate module paths, lowest priority first."""
        module_name = f"{snake_case(entity_name)}_repository"
        paths = [
            f"{self.base_package}.{module_name}",
            f"{self.base_package}.{module_name}_ee",
        ]
        for extension in loaded_extensions:
            package = f"{self.modules_package}.{extension}.database.repositories"
            paths.append(f"{package}.{module_name}")
            paths.append(f"{package}.{module_name}_ee")
        return paths

    def _load(self, path: str) -> Optional[ModuleType]:
        try:
            return importlib.import_module(path)
        except ModuleNotFoundError as e:
            # Only a missing candidate (or one of its packages) counts as "not here".
            if e.name and (path == e.name or path.startswith(f"{e.name}.")):
                return None
            raise

    def resolve_class(self, entity_name: str, loaded_extensions: Sequence[str] = ()) -> Type[Repository]:
        """
        Find the repository class for ``entity_name``.

        Raises:
            ResolutionError: If no candidate defines ``<entity_name>Repository``
        """
        key = (entity_name, tuple(loaded_extensions))
        if key in self._resolved:
            return self._resolved[key]

        class_name = f"{entity_name}Repository"
        candidates = self.candidate_paths(entity_name, loaded_extensions)

        for path in reversed(candidates):
            module = self._load(path)
            if module is None:
                logger.debug(f"No module at {path}")
                continue
            repository_class = getattr(module, class_name, None)
            if repository_class is None:
                logger.debug(f"{path} does not define {class_name}")
                continue
            logger.debug(f"Resolved {entity_name} to {path}.{class_name}")
            self._resolved[key] = repository_class
            return repository_class

        raise ResolutionError(entity_name, candidates)

    def resolve(self, entity_name: str, loaded_extensions: Sequence[str] = ()) -> Repository:
        """Return a live repository instance for ``entity_name``."""
        return self._container.get(self.resolve_class(entity_name, loaded_extensions))
