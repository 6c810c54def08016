"""
American odds arithmetic.

Pure functions, no state. Prices follow the US convention: negative
numbers are the amount risked to win 100, positive numbers the amount
won on a 100 stake.
"""

STANDARD_PRICE = -110


def _check_price(price: float) -> None:
    if -100 < price < 100:
        raise ValueError(f"Invalid American price: {price}")


def payout_multiplier(price: float) -> float:
    """
    Profit per unit staked on a winning bet.

    Examples:
        >>> round(payout_multiplier(-110), 4)
        0.9091
        >>> payout_multiplier(150)
        1.5
    """
    _check_price(price)
    if price < 0:
        return 100.0 / abs(price)
    return price / 100.0


def american_to_decimal(price: float) -> float:
    """Convert an American price to decimal odds (stake included)."""
    return 1.0 + payout_multiplier(price)


def implied_probability(price: float) -> float:
    """Break-even win probability for a price, vig included."""
    _check_price(price)
    if price < 0:
        return abs(price) / (abs(price) + 100.0)
    return 100.0 / (price + 100.0)


def break_even_win_rate(price: float = STANDARD_PRICE) -> float:
    """Win rate needed to break even at ``price`` (0.5238 at -110)."""
    return implied_probability(price)
