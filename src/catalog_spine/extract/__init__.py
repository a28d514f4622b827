"""Field extraction: validated manifest → :class:`NormalizedFields`."""

from catalog_spine.extract.fields import FieldExtractor, Ingredient, NormalizedFields
from catalog_spine.extract.languages import LanguageTable

__all__ = ["FieldExtractor", "Ingredient", "NormalizedFields", "LanguageTable"]
