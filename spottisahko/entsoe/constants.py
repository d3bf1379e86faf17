"""
ENTSO-E EIC codes and document codes used for day-ahead price queries.

A single-zone market queries A44 with identical in_Domain and out_Domain.
"""

# Day-ahead prices (12.1.D Energy Prices)
DOC_TYPE_DAY_AHEAD_PRICES = "A44"

# Finland bidding zone
FI_BZN = "10YFI-1--------U"

# Mapping of price area code -> EIC code for the zones this project can serve
BIDDING_ZONES = {
    "FI": FI_BZN,
    "EE": "10Y1001A1001A39I",   # Estonia
    "SE1": "10Y1001A1001A44P",  # Sweden north
    "SE3": "10Y1001A1001A46L",  # Sweden Stockholm
}
