"""
Taxonomy sources consumed by the analyzer.

The analyzer only needs one capability, list_all(), and reads it once per
analysis. Implementations do not cache: a JSON file edited between two
analyses is picked up by the second one. Caching, if wanted, belongs to the
caller wrapping a repository.

Failures to reach or parse the source raise TaxonomyFetchError, so callers
can tell "no categories configured" (an empty list) from "source broken".
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Union

from pydantic import ValidationError

from .schemas import CategoryDefinition
from .exceptions import TaxonomyFetchError
from .logger import get_module_logger

logger = get_module_logger("taxonomy")


class TaxonomyRepository(ABC):
    """Abstract source of category definitions."""

    @abstractmethod
    def list_all(self) -> list[CategoryDefinition]:
        """
        Return every category definition, in priority order.

        Raises:
            TaxonomyFetchError: if the source cannot be read
        """
        pass


class InMemoryTaxonomyRepository(TaxonomyRepository):
    """Taxonomy held in memory; used by tests and by callers that load it themselves."""

    def __init__(self, categories: Iterable[Union[CategoryDefinition, dict]] = ()):
        self._categories = tuple(
            c if isinstance(c, CategoryDefinition) else CategoryDefinition(**c)
            for c in categories
        )

    def list_all(self) -> list[CategoryDefinition]:
        # CategoryDefinition is frozen, so handing out the same objects is safe
        return list(self._categories)


class JsonTaxonomyRepository(TaxonomyRepository):
    """
    File-based taxonomy.

    The file holds either a list of {"name": ..., "keywords": [...]} objects
    or an object with such a list under "categories". It is re-read on every
    list_all() call.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def list_all(self) -> list[CategoryDefinition]:
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except FileNotFoundError:
            raise TaxonomyFetchError(
                f"Taxonomy file not found: {self.path}",
                source=str(self.path)
            )
        except (OSError, UnicodeDecodeError) as e:
            raise TaxonomyFetchError(
                f"Could not read taxonomy file: {e}",
                source=str(self.path),
                details={"error": str(e)}
            )
        except json.JSONDecodeError as e:
            raise TaxonomyFetchError(
                f"Taxonomy file is not valid JSON: {e}",
                source=str(self.path),
                details={"line": e.lineno, "column": e.colno}
            )

        if isinstance(data, dict):
            data = data.get("categories", [])
        if not isinstance(data, list):
            raise TaxonomyFetchError(
                "Taxonomy must be a list of categories",
                source=str(self.path),
                details={"type": type(data).__name__}
            )

        categories = []
        for index, entry in enumerate(data):
            if not isinstance(entry, dict):
                raise TaxonomyFetchError(
                    f"Taxonomy entry {index} is not an object",
                    source=str(self.path)
                )
            try:
                categories.append(CategoryDefinition(**entry))
            except ValidationError as e:
                raise TaxonomyFetchError(
                    f"Invalid taxonomy entry {index}: {e.error_count()} error(s)",
                    source=str(self.path),
                    details={"errors": e.errors(include_url=False)}
                )

        logger.debug(f"Loaded {len(categories)} categories from {self.path}")
        return categories
