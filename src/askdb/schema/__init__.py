"""Schema introspection and retrieval for target databases."""

from askdb.schema.introspector import EXCLUDED_TABLES, SchemaIntrospector, quote_identifier
from askdb.schema.retrieval import SchemaRetriever, TableMatch

__all__ = [
    "EXCLUDED_TABLES",
    "SchemaIntrospector",
    "SchemaRetriever",
    "TableMatch",
    "quote_identifier",
]
