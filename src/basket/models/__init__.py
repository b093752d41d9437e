"""Pydantic models defining shared data contracts."""

from basket.models.catalog import SortOrderUpdate, StoreAisle, StoreItem, StoreSection
from basket.models.households import Household, HouseholdMember, HouseholdWithMembers
from basket.models.invitations import Invitation, InvitationScope
from basket.models.notifications import NotificationCounts
from basket.models.recipes import Recipe, RecipeIngredient, RecipeIngredientInput, RecipeTag
from basket.models.shopping import (
    CatalogEntry,
    IdeaEntry,
    QuantityUnit,
    ShoppingEntry,
    ShoppingListItem,
    ShoppingListItemInput,
)
from basket.models.stores import Store, StoreCollaborator
from basket.models.users import Actor, RegistrationPolicy, User

__all__ = [
    "SortOrderUpdate",
    "StoreAisle",
    "StoreItem",
    "StoreSection",
    "Household",
    "HouseholdMember",
    "HouseholdWithMembers",
    "Invitation",
    "InvitationScope",
    "NotificationCounts",
    "Recipe",
    "RecipeIngredient",
    "RecipeIngredientInput",
    "RecipeTag",
    "CatalogEntry",
    "IdeaEntry",
    "QuantityUnit",
    "ShoppingEntry",
    "ShoppingListItem",
    "ShoppingListItemInput",
    "Store",
    "StoreCollaborator",
    "Actor",
    "RegistrationPolicy",
    "User",
]
