"""Loyalty tiers - fixed point thresholds, highest matching tier wins"""

from typing import Optional

TIERS = [
    {"name": "Bronze", "min_points": 0, "next_tier": "Silver", "next_at": 300, "perk": "$10 off"},
    {"name": "Silver", "min_points": 300, "next_tier": "Gold", "next_at": 700, "perk": "$25 off"},
    {"name": "Gold", "min_points": 700, "next_tier": "Platinum", "next_at": 1500, "perk": "$50 off"},
    {"name": "Platinum", "min_points": 1500, "next_tier": None, "next_at": None, "perk": "VIP perks"},
]


def get_loyalty_tier(points: int) -> dict:
    """
    Return the tier for a balance, plus how many points remain to the next one.
    Balances below zero (after redemptions or expiries) stay Bronze.
    """
    tier = TIERS[0]
    for candidate in TIERS:
        if points >= candidate["min_points"]:
            tier = candidate

    points_to_next: Optional[int] = None
    if tier["next_at"] is not None:
        points_to_next = tier["next_at"] - points

    return {**tier, "points_to_next": points_to_next}
