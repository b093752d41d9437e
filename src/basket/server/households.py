"""Household, membership and household invitation routes."""

from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from basket.access import Role
from basket.db import households as household_store
from basket.db import invitations, membership, recipe_tags, recipes
from basket.models.households import Household, HouseholdMember, HouseholdWithMembers
from basket.models.invitations import Invitation
from basket.models.recipes import Recipe, RecipeIngredientInput, RecipeTag
from basket.models.users import Actor
from basket.server import deps

router = APIRouter(tags=["households"])

SCOPE = "household"


class HouseholdRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class RoleRequest(BaseModel):
    role: Role


class InvitationRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    role: Role = Role.VIEWER


class RecipeCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=2000)
    ingredients: list[RecipeIngredientInput] = Field(default_factory=list)


class TagCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=255)


class TagUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, max_length=255)


@router.post("/households", response_model=Household, status_code=status.HTTP_201_CREATED)
def create_household(payload: HouseholdRequest, actor: Actor = Depends(deps.get_actor)) -> Household:
    return household_store.create_household(payload.name, actor)


@router.get("/households", response_model=list[Household])
def list_households(actor: Actor = Depends(deps.get_actor)) -> list[Household]:
    return household_store.list_households(actor)


@router.get("/households/{household_id}", response_model=HouseholdWithMembers)
def get_household(household_id: str, actor: Actor = Depends(deps.get_actor)) -> HouseholdWithMembers:
    return household_store.get_household(household_id, actor)


@router.patch("/households/{household_id}", response_model=Household)
def rename_household(
    household_id: str, payload: HouseholdRequest, actor: Actor = Depends(deps.get_actor)
) -> Household:
    return household_store.rename_household(household_id, payload.name, actor)


@router.delete("/households/{household_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_household(household_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    household_store.delete_household(household_id, actor)


@router.get("/households/{household_id}/members", response_model=list[HouseholdMember])
def list_members(household_id: str, actor: Actor = Depends(deps.get_actor)):
    return membership.list_members(SCOPE, household_id, actor)


@router.put("/households/{household_id}/members/{user_id}", response_model=HouseholdMember)
def set_member_role(
    household_id: str, user_id: str, payload: RoleRequest, actor: Actor = Depends(deps.get_actor)
):
    return membership.set_role(SCOPE, household_id, user_id, payload.role, actor)


@router.delete("/households/{household_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(household_id: str, user_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    membership.remove_member(SCOPE, household_id, user_id, actor)


@router.post("/households/{household_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_household(household_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    membership.leave(SCOPE, household_id, actor)


@router.get("/households/{household_id}/invitations", response_model=list[Invitation])
def list_invitations(household_id: str, actor: Actor = Depends(deps.get_actor)) -> list[Invitation]:
    return invitations.list_pending_for_scope(SCOPE, household_id, actor)


@router.post(
    "/households/{household_id}/invitations",
    response_model=Invitation,
    status_code=status.HTTP_201_CREATED,
)
def create_invitation(
    household_id: str, payload: InvitationRequest, actor: Actor = Depends(deps.get_actor)
) -> Invitation:
    return invitations.create_invitation(SCOPE, household_id, payload.email, payload.role, actor)


@router.delete(
    "/households/{household_id}/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def retract_invitation(household_id: str, invitation_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    invitations.retract_invitation(SCOPE, invitation_id, actor, scope_id=household_id)


@router.post("/households/invitations/{token}/accept", response_model=HouseholdMember)
def accept_invitation(token: str, actor: Actor = Depends(deps.get_actor)):
    return invitations.accept_invitation(SCOPE, token, actor)


@router.post("/households/invitations/{token}/decline", status_code=status.HTTP_204_NO_CONTENT)
def decline_invitation(token: str, actor: Actor = Depends(deps.get_actor)) -> None:
    invitations.decline_invitation(SCOPE, token, actor)


@router.get("/households/{household_id}/recipes", response_model=list[Recipe])
def list_recipes(
    household_id: str,
    include_hidden: bool = Query(default=False),
    tag_id: List[str] = Query(default=[]),
    actor: Actor = Depends(deps.get_actor),
) -> list[Recipe]:
    if tag_id:
        return recipes.search_recipes_by_tags(household_id, tag_id, actor)
    return recipes.list_recipes(household_id, actor, include_hidden=include_hidden)


@router.post(
    "/households/{household_id}/recipes",
    response_model=Recipe,
    status_code=status.HTTP_201_CREATED,
)
def create_recipe(
    household_id: str, payload: RecipeCreateRequest, actor: Actor = Depends(deps.get_actor)
) -> Recipe:
    return recipes.create_recipe(
        household_id,
        payload.name,
        actor,
        notes=payload.notes,
        ingredients=payload.ingredients,
    )


@router.get("/households/{household_id}/recipe-tags", response_model=list[RecipeTag])
def list_recipe_tags(household_id: str, actor: Actor = Depends(deps.get_actor)) -> list[RecipeTag]:
    return recipe_tags.list_tags(household_id, actor)


@router.post(
    "/households/{household_id}/recipe-tags",
    response_model=RecipeTag,
    status_code=status.HTTP_201_CREATED,
)
def create_recipe_tag(
    household_id: str, payload: TagCreateRequest, actor: Actor = Depends(deps.get_actor)
) -> RecipeTag:
    return recipe_tags.create_tag(household_id, payload.name, actor, color=payload.color)


@router.patch("/households/{household_id}/recipe-tags/{tag_id}", response_model=RecipeTag)
def update_recipe_tag(
    household_id: str, tag_id: str, payload: TagUpdateRequest, actor: Actor = Depends(deps.get_actor)
) -> RecipeTag:
    changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
    return recipe_tags.update_tag(household_id, tag_id, actor, **changes)


@router.delete("/households/{household_id}/recipe-tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe_tag(household_id: str, tag_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    recipe_tags.delete_tag(household_id, tag_id, actor)
