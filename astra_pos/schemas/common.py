from decimal import Decimal
from typing import Annotated

from pydantic import Field, PlainSerializer

# Largest amounts the Numeric(12, 2) sale columns and Numeric(10, 2) prices hold
MAX_AMOUNT = Decimal("9999999999.99")
MAX_PRICE = Decimal("99999999.99")

# Integer columns
MAX_COUNT = 2_147_483_647

# Exact decimals in Python, plain numbers on the wire
Money = Annotated[
    Decimal,
    Field(ge=0, max_digits=12, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]

Price = Annotated[
    Decimal,
    Field(ge=0, max_digits=10, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]

PIN_PATTERN = r"^[0-9]{4}$"
