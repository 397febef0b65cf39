import pandas as pd

from solar_calculator.config import TARIFF_TIERS


def tier_bill(total_kwh, tiers=TARIFF_TIERS):
    """
    Price an amount of energy on a progressive block tariff.

    Parameters
    ----------
    total_kwh : float
        Energy consumed in the billing period (kWh). Must be >= 0.
    tiers : list of dict
        Ordered bands with keys "limit" (band width in kWh, math.inf for the
        open-ended top band) and "rate" (currency per kWh).

    Returns
    -------
    float
        Total cost of `total_kwh`.
    """
    remaining = total_kwh
    total_bill = 0.0
    for tier in tiers:
        amount_in_tier = min(remaining, tier["limit"])
        if amount_in_tier > 0:
            total_bill += amount_in_tier * tier["rate"]
            remaining -= amount_in_tier
        if remaining <= 0:
            break
    return total_bill


def tier_breakdown(total_kwh, tiers=TARIFF_TIERS):
    """
    Split a tiered bill into its bands.

    Returns
    -------
    pd.DataFrame
        One row per band that receives energy, with columns: tier, kwh, rate, cost.
    """
    rows = []
    remaining = total_kwh
    for i, tier in enumerate(tiers):
        if remaining <= 0:
            break
        kwh = min(remaining, tier["limit"])
        if kwh > 0:
            rows.append({"tier": i + 1, "kwh": kwh, "rate": tier["rate"], "cost": kwh * tier["rate"]})
            remaining -= kwh
    return pd.DataFrame(rows, columns=["tier", "kwh", "rate", "cost"])


def marginal_rate(total_kwh, tiers=TARIFF_TIERS):
    """Rate charged for the last kWh of `total_kwh`."""
    if not tiers:
        return 0.0
    upper = 0.0
    for tier in tiers:
        upper += tier["limit"]
        if total_kwh <= upper:
            return tier["rate"]
    return tiers[-1]["rate"]
