"""Store routes: sharing, collaborators, layout, catalog and shopping list."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field

from basket.access import Role
from basket.db import catalog, invitations, layout, membership, shopping_list
from basket.db import stores as store_store
from basket.models.catalog import SortOrderUpdate, StoreAisle, StoreItem, StoreSection
from basket.models.invitations import Invitation
from basket.models.shopping import ShoppingListItem
from basket.models.stores import Store, StoreCollaborator
from basket.models.users import Actor
from basket.server import deps

router = APIRouter(tags=["stores"])

SCOPE = "store"


class StoreCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    household_id: Optional[str] = None


class StoreRenameRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class VisibilityRequest(BaseModel):
    is_hidden: bool


class HouseholdAssignmentRequest(BaseModel):
    household_id: Optional[str] = None


class DuplicateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    include_items: bool = False


class RoleRequest(BaseModel):
    role: Role


class InvitationRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    role: Role = Role.EDITOR


class NameRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class SectionCreateRequest(BaseModel):
    aisle_id: str
    name: str = Field(min_length=1, max_length=100)


class SectionUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    aisle_id: Optional[str] = None


class ReorderRequest(BaseModel):
    updates: list[SortOrderUpdate]
    aisle_id: Optional[str] = None


class ItemCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    aisle_id: Optional[str] = None
    section_id: Optional[str] = None


class ItemUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    aisle_id: Optional[str] = None
    section_id: Optional[str] = None


class FlagRequest(BaseModel):
    value: Optional[bool] = None


class ToggleRequest(BaseModel):
    is_checked: Optional[bool] = None


class ShoppingListItemRequest(BaseModel):
    """List row payload; the store (and the row id on update) come from the path."""

    is_idea: bool = False
    name: Optional[str] = Field(default=None, max_length=200)
    store_item_id: Optional[str] = None
    aisle_id: Optional[str] = None
    section_id: Optional[str] = None
    qty: Optional[float] = Field(default=None, ge=0)
    unit_id: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    is_checked: Optional[bool] = None
    is_sample: Optional[bool] = None
    is_unsure: Optional[bool] = None
    snoozed_until: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")


class ClearCheckedResponse(BaseModel):
    removed: int


# Stores


@router.post("/stores", response_model=Store, status_code=status.HTTP_201_CREATED)
def create_store(payload: StoreCreateRequest, actor: Actor = Depends(deps.get_actor)) -> Store:
    return store_store.create_store(payload.name, actor, household_id=payload.household_id)


@router.get("/stores", response_model=list[Store])
def list_stores(
    include_hidden: bool = Query(default=False),
    actor: Actor = Depends(deps.get_actor),
) -> list[Store]:
    return store_store.list_stores(actor, include_hidden=include_hidden)


@router.get("/stores/{store_id}", response_model=Store)
def get_store(store_id: str, actor: Actor = Depends(deps.get_actor)) -> Store:
    return store_store.get_store(store_id, actor)


@router.patch("/stores/{store_id}", response_model=Store)
def rename_store(store_id: str, payload: StoreRenameRequest, actor: Actor = Depends(deps.get_actor)) -> Store:
    return store_store.rename_store(store_id, payload.name, actor)


@router.delete("/stores/{store_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_store(store_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    store_store.delete_store(store_id, actor)


@router.put("/stores/{store_id}/visibility", response_model=Store)
def set_visibility(store_id: str, payload: VisibilityRequest, actor: Actor = Depends(deps.get_actor)) -> Store:
    return store_store.set_store_hidden(store_id, payload.is_hidden, actor)


@router.put("/stores/{store_id}/household", response_model=Store)
def set_household(
    store_id: str, payload: HouseholdAssignmentRequest, actor: Actor = Depends(deps.get_actor)
) -> Store:
    return store_store.set_store_household(store_id, payload.household_id, actor)


@router.post("/stores/{store_id}/duplicate", response_model=Store, status_code=status.HTTP_201_CREATED)
def duplicate_store(store_id: str, payload: DuplicateRequest, actor: Actor = Depends(deps.get_actor)) -> Store:
    return store_store.duplicate_store(store_id, payload.name, actor, include_items=payload.include_items)


# Collaborators and invitations


@router.get("/stores/{store_id}/collaborators", response_model=list[StoreCollaborator])
def list_collaborators(store_id: str, actor: Actor = Depends(deps.get_actor)):
    return membership.list_members(SCOPE, store_id, actor)


@router.put("/stores/{store_id}/collaborators/{user_id}", response_model=StoreCollaborator)
def set_collaborator_role(
    store_id: str, user_id: str, payload: RoleRequest, actor: Actor = Depends(deps.get_actor)
):
    return membership.set_role(SCOPE, store_id, user_id, payload.role, actor)


@router.delete("/stores/{store_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_collaborator(store_id: str, user_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    membership.remove_member(SCOPE, store_id, user_id, actor)


@router.post("/stores/{store_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_store(store_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    membership.leave(SCOPE, store_id, actor)


@router.get("/stores/{store_id}/invitations", response_model=list[Invitation])
def list_invitations(store_id: str, actor: Actor = Depends(deps.get_actor)) -> list[Invitation]:
    return invitations.list_pending_for_scope(SCOPE, store_id, actor)


@router.post("/stores/{store_id}/invitations", response_model=Invitation, status_code=status.HTTP_201_CREATED)
def create_invitation(
    store_id: str, payload: InvitationRequest, actor: Actor = Depends(deps.get_actor)
) -> Invitation:
    return invitations.create_invitation(SCOPE, store_id, payload.email, payload.role, actor)


@router.delete("/stores/{store_id}/invitations/{invitation_id}", status_code=status.HTTP_204_NO_CONTENT)
def retract_invitation(store_id: str, invitation_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    invitations.retract_invitation(SCOPE, invitation_id, actor, scope_id=store_id)


@router.post("/stores/invitations/{token}/accept", response_model=StoreCollaborator)
def accept_invitation(token: str, actor: Actor = Depends(deps.get_actor)):
    return invitations.accept_invitation(SCOPE, token, actor)


@router.post("/stores/invitations/{token}/decline", status_code=status.HTTP_204_NO_CONTENT)
def decline_invitation(token: str, actor: Actor = Depends(deps.get_actor)) -> None:
    invitations.decline_invitation(SCOPE, token, actor)


# Layout


@router.get("/stores/{store_id}/aisles", response_model=list[StoreAisle])
def list_aisles(store_id: str, actor: Actor = Depends(deps.get_actor)) -> list[StoreAisle]:
    return layout.list_aisles(store_id, actor)


@router.post("/stores/{store_id}/aisles", response_model=StoreAisle, status_code=status.HTTP_201_CREATED)
def create_aisle(store_id: str, payload: NameRequest, actor: Actor = Depends(deps.get_actor)) -> StoreAisle:
    return layout.create_aisle(store_id, payload.name, actor)


@router.post("/stores/{store_id}/aisles/reorder", response_model=list[StoreAisle])
def reorder_aisles(store_id: str, payload: ReorderRequest, actor: Actor = Depends(deps.get_actor)) -> list[StoreAisle]:
    return layout.reorder_aisles(store_id, payload.updates, actor)


@router.patch("/stores/{store_id}/aisles/{aisle_id}", response_model=StoreAisle)
def rename_aisle(
    store_id: str, aisle_id: str, payload: NameRequest, actor: Actor = Depends(deps.get_actor)
) -> StoreAisle:
    return layout.rename_aisle(store_id, aisle_id, payload.name, actor)


@router.delete("/stores/{store_id}/aisles/{aisle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_aisle(store_id: str, aisle_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    layout.delete_aisle(store_id, aisle_id, actor)


@router.get("/stores/{store_id}/sections", response_model=list[StoreSection])
def list_sections(
    store_id: str,
    aisle_id: Optional[str] = Query(default=None),
    actor: Actor = Depends(deps.get_actor),
) -> list[StoreSection]:
    return layout.list_sections(store_id, actor, aisle_id=aisle_id)


@router.post("/stores/{store_id}/sections", response_model=StoreSection, status_code=status.HTTP_201_CREATED)
def create_section(
    store_id: str, payload: SectionCreateRequest, actor: Actor = Depends(deps.get_actor)
) -> StoreSection:
    return layout.create_section(store_id, payload.aisle_id, payload.name, actor)


@router.post("/stores/{store_id}/sections/reorder", response_model=list[StoreSection])
def reorder_sections(
    store_id: str, payload: ReorderRequest, actor: Actor = Depends(deps.get_actor)
) -> list[StoreSection]:
    return layout.reorder_sections(store_id, payload.updates, actor, aisle_id=payload.aisle_id)


@router.patch("/stores/{store_id}/sections/{section_id}", response_model=StoreSection)
def update_section(
    store_id: str, section_id: str, payload: SectionUpdateRequest, actor: Actor = Depends(deps.get_actor)
) -> StoreSection:
    changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
    return layout.update_section(store_id, section_id, actor, **changes)


@router.delete("/stores/{store_id}/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_section(store_id: str, section_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    layout.delete_section(store_id, section_id, actor)


# Catalog


@router.get("/stores/{store_id}/items", response_model=list[StoreItem])
def list_items(
    store_id: str,
    include_hidden: bool = Query(default=False),
    actor: Actor = Depends(deps.get_actor),
) -> list[StoreItem]:
    return catalog.list_items(store_id, actor, include_hidden=include_hidden)


@router.post("/stores/{store_id}/items", response_model=StoreItem)
def create_or_get_item(
    store_id: str, payload: ItemCreateRequest, actor: Actor = Depends(deps.get_actor)
) -> StoreItem:
    return catalog.create_or_get_item(
        store_id, payload.name, actor, aisle_id=payload.aisle_id, section_id=payload.section_id
    )


@router.get("/stores/{store_id}/items/search", response_model=list[StoreItem])
def search_items(
    store_id: str,
    q: str = Query(default="", max_length=200),
    limit: Optional[int] = Query(default=None),
    actor: Actor = Depends(deps.get_actor),
) -> list[StoreItem]:
    return catalog.search_items(store_id, q, actor, limit=limit)


@router.get("/stores/{store_id}/items/{item_id}", response_model=StoreItem)
def get_item(store_id: str, item_id: str, actor: Actor = Depends(deps.get_actor)) -> StoreItem:
    return catalog.get_item(store_id, item_id, actor)


@router.patch("/stores/{store_id}/items/{item_id}", response_model=StoreItem)
def update_item(
    store_id: str, item_id: str, payload: ItemUpdateRequest, actor: Actor = Depends(deps.get_actor)
) -> StoreItem:
    changes: dict[str, Any] = payload.model_dump(exclude_unset=True)
    return catalog.update_item(store_id, item_id, actor, **changes)


@router.delete("/stores/{store_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(store_id: str, item_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    catalog.delete_item(store_id, item_id, actor)


@router.post("/stores/{store_id}/items/{item_id}/favorite", response_model=StoreItem)
def set_favorite(
    store_id: str,
    item_id: str,
    payload: Optional[FlagRequest] = Body(default=None),
    actor: Actor = Depends(deps.get_actor),
) -> StoreItem:
    return catalog.set_item_flag(store_id, item_id, "favorite", actor, payload.value if payload else None)


@router.post("/stores/{store_id}/items/{item_id}/hidden", response_model=StoreItem)
def set_hidden(
    store_id: str,
    item_id: str,
    payload: Optional[FlagRequest] = Body(default=None),
    actor: Actor = Depends(deps.get_actor),
) -> StoreItem:
    return catalog.set_item_flag(store_id, item_id, "hidden", actor, payload.value if payload else None)


# Shopping list


@router.get("/stores/{store_id}/shopping-list", response_model=list[ShoppingListItem])
def list_shopping_list(store_id: str, actor: Actor = Depends(deps.get_actor)) -> list[ShoppingListItem]:
    return shopping_list.list_shopping_list(store_id, actor)


@router.post("/stores/{store_id}/shopping-list", response_model=ShoppingListItem)
def add_shopping_list_item(
    store_id: str, payload: ShoppingListItemRequest, actor: Actor = Depends(deps.get_actor)
) -> ShoppingListItem:
    data = payload.model_dump(exclude_unset=True)
    data["store_id"] = store_id
    return shopping_list.upsert_shopping_list_item(data, actor)


@router.post("/stores/{store_id}/shopping-list/clear-checked", response_model=ClearCheckedResponse)
def clear_checked(store_id: str, actor: Actor = Depends(deps.get_actor)) -> ClearCheckedResponse:
    return ClearCheckedResponse(removed=shopping_list.clear_checked(store_id, actor))


@router.patch("/stores/{store_id}/shopping-list/{list_item_id}", response_model=ShoppingListItem)
def update_shopping_list_item(
    store_id: str,
    list_item_id: str,
    payload: ShoppingListItemRequest,
    actor: Actor = Depends(deps.get_actor),
) -> ShoppingListItem:
    data = payload.model_dump(exclude_unset=True)
    data.update(store_id=store_id, id=list_item_id)
    return shopping_list.upsert_shopping_list_item(data, actor)


@router.post("/stores/{store_id}/shopping-list/{list_item_id}/toggle", response_model=ShoppingListItem)
def toggle_shopping_list_item(
    store_id: str,
    list_item_id: str,
    payload: Optional[ToggleRequest] = Body(default=None),
    actor: Actor = Depends(deps.get_actor),
) -> ShoppingListItem:
    return shopping_list.toggle_checked(
        store_id, list_item_id, actor, payload.is_checked if payload else None
    )


@router.delete("/stores/{store_id}/shopping-list/{list_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_shopping_list_item(store_id: str, list_item_id: str, actor: Actor = Depends(deps.get_actor)) -> None:
    shopping_list.remove_item(store_id, list_item_id, actor)


@router.delete(
    "/stores/{store_id}/shopping-list/{list_item_id}/with-item",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_shopping_list_item_with_item(
    store_id: str, list_item_id: str, actor: Actor = Depends(deps.get_actor)
) -> None:
    shopping_list.delete_with_item(store_id, list_item_id, actor)
