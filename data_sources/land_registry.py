"""
HM Land Registry Price Paid Data
Recent sales for a postcode via the Land Registry SPARQL endpoint.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import BaseModel

from data_sources import http_client
from data_sources.error_handling import absent_on_failure, parse_payload
from data_sources.models import HousePrices, HouseSale

LAND_REGISTRY_SPARQL_URL = "https://landregistry.data.gov.uk/landregistry/query"

SALES_LIMIT = 20

_POSTCODE_LITERAL = re.compile(r"^[A-Z0-9]+( [A-Z0-9]+)?$")
_INWARD_SPLIT = re.compile(r"^(.+?)(\d\w\w)$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def format_postcode(postcode: str) -> str:
    """Upper-case, drop whitespace, then put the single space back before the inward code."""
    compact = re.sub(r"\s+", "", postcode.upper())
    m = _INWARD_SPLIT.match(compact)
    if not m:
        return compact
    return f"{m.group(1)} {m.group(2)}"


@dataclass(frozen=True)
class PricePaidQuery:
    """Most recent price-paid transactions for one postcode."""
    postcode: str
    limit: int = SALES_LIMIT

    def __post_init__(self):
        if not _POSTCODE_LITERAL.match(self.postcode):
            raise ValueError(f"Not a formatted postcode: {self.postcode!r}")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")

    def to_sparql(self) -> str:
        return f"""
PREFIX lrppi: <http://landregistry.data.gov.uk/def/ppi/>
PREFIX lrcommon: <http://landregistry.data.gov.uk/def/common/>
SELECT ?amount ?date ?propertyType ?paon ?street
WHERE {{
  ?tx lrppi:pricePaid ?amount ;
      lrppi:transactionDate ?date ;
      lrppi:propertyAddress ?addr .
  ?addr lrcommon:postcode "{self.postcode}" .
  OPTIONAL {{ ?addr lrcommon:paon ?paon }}
  OPTIONAL {{ ?addr lrcommon:street ?street }}
  OPTIONAL {{ ?tx lrppi:propertyType ?propertyType }}
}}
ORDER BY DESC(?date)
LIMIT {self.limit}
"""

    def form_data(self) -> Dict[str, str]:
        return {"query": self.to_sparql()}


class _Term(BaseModel):
    value: Optional[str] = None


class _Results(BaseModel):
    bindings: List[Dict[str, _Term]] = []


class _SparqlResponse(BaseModel):
    results: _Results = _Results()


def _parse_amount(value: Optional[str]) -> int:
    m = _LEADING_INT.match(value or "")
    return int(m.group(1)) if m else 0


def _value(binding: Dict[str, _Term], name: str) -> Optional[str]:
    term = binding.get(name)
    return term.value if term is not None else None


def parse_sale(binding: Dict[str, _Term]) -> HouseSale:
    property_type = _value(binding, "propertyType")
    address = " ".join(part for part in (_value(binding, "paon"), _value(binding, "street")) if part)
    return HouseSale(
        amount=_parse_amount(_value(binding, "amount")),
        date=_value(binding, "date"),
        type=(property_type.rsplit("/", 1)[-1] if property_type else "") or "unknown",
        address=address,
    )


def average_price(sales: List[HouseSale]) -> int:
    """Mean of positive amounts, rounded to whole pounds; 0 when there are none."""
    amounts = [s.amount for s in sales if s.amount > 0]
    if not amounts:
        return 0
    return round(sum(amounts) / len(amounts))


def summarize_sales(sales: List[HouseSale]) -> HousePrices:
    return HousePrices(sales=sales, average_price=average_price(sales), count=len(sales))


@absent_on_failure("land_registry")
async def get_house_prices(postcode: str) -> Optional[HousePrices]:
    """
    Recent sales in a postcode.

    Returns:
        {sales: [{amount, date, type, address}], averagePrice, count} or None
    """
    query = PricePaidQuery(format_postcode(postcode))
    payload = await http_client.fetch_json(
        LAND_REGISTRY_SPARQL_URL,
        api_name="land_registry",
        method="POST",
        data=query.form_data(),
        headers={"Accept": "application/sparql-results+json"},
    )
    response = parse_payload(_SparqlResponse, payload, "land_registry")
    return summarize_sales([parse_sale(b) for b in response.results.bindings])
