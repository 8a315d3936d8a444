"""Destination directory: regions (wilayas) and sub-regions (communes).

Only the parts the order pipeline reads are modeled: display names, the
postal region code, and the identifier the carrier knows the place by.
Maintenance of the directory belongs to the surrounding admin tooling.
"""

from protean.fields import Boolean, Identifier, Integer, String

from ordering.domain import ordering


@ordering.aggregate
class Region:
    name = String(required=True, max_length=100)
    code = Integer(required=True, min_value=1, max_value=58)
    carrier_code = String(max_length=50)
    is_active = Boolean(default=True)


@ordering.aggregate
class SubRegion:
    name = String(required=True, max_length=100)
    region_id = Identifier(required=True)
    carrier_code = String(max_length=50)
    is_active = Boolean(default=True)
