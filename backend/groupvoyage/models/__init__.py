from groupvoyage.models.group import PREFERENCE_FIELDS, GroupMember, TravelGroup

__all__ = [
    "GroupMember",
    "PREFERENCE_FIELDS",
    "TravelGroup",
]
