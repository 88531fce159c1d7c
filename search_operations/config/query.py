"""
Search Query Model

This module defines the Pydantic model of a search query and its encoding
into the service's `params` string: URL-encoded key/value pairs where list
and boolean values are written as JSON.
"""

import json
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qsl, quote, urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import PARAMETER_NAMES

# A filter is either a single expression ("brand:Apple") or an OR-group of them.
FilterExpression = Union[str, List[str]]

_FIELD_NAMES = {wire: field for field, wire in PARAMETER_NAMES.items()}


class SearchQuery(BaseModel):
    """
    Pydantic model for search query parameters.

    Filter expressions are passed through untouched; only the facet filters
    are ever edited, by the disjunctive faceting helper.

    Example:
        >>> query = SearchQuery(query="phone", facets=["brand", "category"],
        ...                     facet_filters=["category:device"])
        >>> query.build()
        'facetFilters=%5B%22category%3Adevice%22%5D&facets=%5B%22brand%22%2C%22category%22%5D&query=phone'
    """
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    query: str = Field("", description="Full-text query")
    facets: Optional[List[str]] = Field(None, description="Facets to compute counts for")
    facet_filters: Optional[List[FilterExpression]] = Field(
        None, description="Facet filters; strings are ANDed, inner lists are ORed")
    numeric_filters: Optional[List[FilterExpression]] = Field(
        None, description="Numeric filters such as 'price>=10'")
    filters: Optional[str] = Field(None, description="Filter expression in the service's filter syntax")
    page: Optional[int] = Field(None, ge=0, description="Page number, starting at 0")
    hits_per_page: Optional[int] = Field(None, ge=0, le=1000, description="Number of hits per page")
    attributes_to_retrieve: Optional[List[str]] = Field(None, description="Attributes returned in hits")
    attributes_to_highlight: Optional[List[str]] = Field(None, description="Attributes to highlight")
    attributes_to_snippet: Optional[List[str]] = Field(None, description="Attributes to snippet")
    analytics: Optional[bool] = Field(None, description="Whether the query counts in analytics")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Any other parameter, by wire name")

    @field_validator("extra")
    @classmethod
    def validate_extra(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Known parameters must go through their own field"""
        clashes = sorted(set(v) & set(_FIELD_NAMES))
        if clashes:
            raise ValueError(f"Use the dedicated fields for: {', '.join(clashes)}")
        return v

    def to_params(self) -> Dict[str, Any]:
        """
        Return the parameters that are set, keyed by wire name.

        Returns:
            Dict of wire name to value, extra parameters included
        """
        params: Dict[str, Any] = {}
        for field_name, wire_name in PARAMETER_NAMES.items():
            value = getattr(self, field_name)
            if value is None or (field_name == "query" and value == ""):
                continue
            params[wire_name] = value
        params.update(self.extra)
        return params

    def build(self) -> str:
        """
        Encode the query as a `params` string.

        Keys are sorted, so equal queries always encode identically.
        """
        pairs = [(name, _encode_value(value)) for name, value in sorted(self.to_params().items())]
        return urlencode(pairs, quote_via=quote)

    def with_updates(self, **updates: Any) -> "SearchQuery":
        """Return a validated copy with some fields replaced."""
        data = self.model_dump()
        data.update(updates)
        return SearchQuery(**data)

    @classmethod
    def parse(cls, params: str) -> "SearchQuery":
        """
        Decode a `params` string produced by build().

        Unknown parameters land in `extra`.
        """
        fields: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for name, raw in parse_qsl(params, keep_blank_values=True):
            field_name = _FIELD_NAMES.get(name)
            if field_name == "query" or field_name == "filters":
                fields[field_name] = raw
            elif field_name is not None:
                fields[field_name] = _decode_value(raw)
            else:
                extra[name] = _decode_value(raw)
        return cls(extra=extra, **fields)


def _encode_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _decode_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw
