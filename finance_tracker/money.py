from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


def to_money(value) -> Decimal:
    """Coerce ``value`` to a Decimal rounded to whole cents.

    Floats go through ``str`` first so ``0.1 + 0.2`` becomes ``0.30`` rather
    than carrying binary noise into the database.
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise ValueError(f'Invalid amount: {value!r}')
    if not isinstance(value, Decimal):
        value = str(value)
    try:
        return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f'Invalid amount: {value!r}') from exc


def as_float(value) -> float:
    return round(float(value or 0), 2)
