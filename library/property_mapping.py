"""
Property mapping from resource fields to entity storage fields.

Clients sort by the fields they see (`Name`, `Age`), which do not exist as
such on the stored entity. A mapping translates an `orderBy` string into a
MongoDB sort specification.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Type

from library.models import Author

SortSpecification = List[Tuple[str, int]]


class PropertyMappingValue:
    """Storage fields a resource property sorts on; revert flips the direction."""

    def __init__(self, destination_properties: Iterable[str], revert: bool = False):
        self.destination_properties: Tuple[str, ...] = tuple(destination_properties)
        self.revert = revert


def _split_order_by(order_by: Optional[str]) -> List[Tuple[str, bool]]:
    """Split "name desc, age" into [("name", True), ("age", False)]."""
    clauses = []
    if not order_by or not order_by.strip():
        return clauses

    for clause in order_by.split(","):
        clause = clause.strip()
        if not clause:
            continue
        descending = clause.lower().endswith(" desc")
        index_of_first_space = clause.find(" ")
        property_name = clause if index_of_first_space == -1 else clause[:index_of_first_space]
        clauses.append((property_name, descending))
    return clauses


@dataclass
class PropertyMapping:
    """Case-insensitive mapping of resource property names to storage fields."""
    mapping: Dict[str, PropertyMappingValue] = field(default_factory=dict)

    def __post_init__(self):
        self.mapping = {key.lower(): value for key, value in self.mapping.items()}

    def has_property(self, name: str) -> bool:
        return name.strip().lower() in self.mapping

    def is_valid_order_by(self, order_by: Optional[str]) -> bool:
        """Empty order_by is valid; otherwise every clause must be mapped."""
        return all(self.has_property(name) for name, _ in _split_order_by(order_by))

    def sort_specification(self, order_by: Optional[str]) -> SortSpecification:
        """
        Translate an orderBy string into a MongoDB sort specification.

        Raises:
            ValueError: If a clause names an unmapped property
        """
        sort: SortSpecification = []
        for name, descending in _split_order_by(order_by):
            value = self.mapping.get(name.lower())
            if value is None:
                raise ValueError(f"Key mapping for {name} is missing")

            if value.revert:
                descending = not descending
            direction = -1 if descending else 1

            for destination in value.destination_properties:
                sort.append((destination, direction))
        return sort


AUTHOR_PROPERTY_MAPPING = PropertyMapping({
    "Id": PropertyMappingValue(["_id"]),
    "Genre": PropertyMappingValue(["genre"]),
    "Age": PropertyMappingValue(["date_of_birth"], revert=True),
    "Name": PropertyMappingValue(["first_name", "last_name"]),
})


class PropertyMappingService:
    """Registry of property mappings keyed by entity type."""

    def __init__(self, mappings: Optional[Dict[Type, PropertyMapping]] = None):
        if mappings is None:
            mappings = {Author: AUTHOR_PROPERTY_MAPPING}
        self._mappings = dict(mappings)

    def get_property_mapping(self, entity_type: Type) -> PropertyMapping:
        """
        Raises:
            LookupError: If no mapping is registered for entity_type
        """
        try:
            return self._mappings[entity_type]
        except KeyError:
            raise LookupError(f"Cannot find exact property mapping instance for {entity_type.__name__}")

    def valid_mapping_exists_for(self, entity_type: Type, order_by: Optional[str]) -> bool:
        return self.get_property_mapping(entity_type).is_valid_order_by(order_by)
