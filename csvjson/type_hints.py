from typing import Annotated

from beartype.vale import Is

IsPositive = Is[lambda n: n > 0]

# Newlines and the quote character would make line-bounded parsing ambiguous.
IsDelimiter = Is[lambda s: len(s) == 1 and s not in {'"', "\r", "\n"}]

PositiveInt = Annotated[int, IsPositive]
Delimiter = Annotated[str, IsDelimiter]


def _is_codec(name: str) -> bool:
    try:
        "".encode(name)
    except LookupError:
        return False
    return True


Encoding = Annotated[str, Is[_is_codec]]
