"""Resolve the cumulative energy counter from a decoded frame."""
from enum import Enum
from typing import Mapping, Optional, Tuple


class TariffScheme(Enum):
    """Metering schemes in resolution order.

    A meter reports a single scheme, so the order only matters for frames
    carrying several complete groups: the earliest member wins.
    """

    EAST = ("EAST",)
    BASE = ("BASE",)
    HCHP = ("HCHC", "HCHP")
    EJP = ("EJPHN", "EJPHPM")
    TEMPO = ("BBRHCJB", "BBRHPJB", "BBRHCJW", "BBRHPJW", "BBRHCJR", "BBRHPJR")

    @property
    def fields(self) -> Tuple[str, ...]:
        return self.value


# Enum iteration follows definition order; kept explicit all the same.
RESOLUTION_ORDER = (
    TariffScheme.EAST,
    TariffScheme.BASE,
    TariffScheme.HCHP,
    TariffScheme.EJP,
    TariffScheme.TEMPO,
)


def match_scheme(fields: Mapping[str, str]) -> Optional[TariffScheme]:
    """Return the first scheme whose every field is present."""
    for scheme in RESOLUTION_ORDER:
        if all(name in fields for name in scheme.fields):
            return scheme
    return None


def resolve_counter(fields: Mapping[str, str]) -> Optional[int]:
    """Return the summed counter of the matching scheme, or None."""
    scheme = match_scheme(fields)
    if scheme is None:
        return None
    values = [fields[name].strip() for name in scheme.fields]
    if not all(value.isascii() and value.isdigit() for value in values):
        return None
    return sum(int(value) for value in values)
