"""
Savings goals and contributions.

Deleting a goal archives it; the bulk wipe is the only hard delete.
"""

from fastapi import APIRouter, Depends

from app.dependencies import get_current_user, get_services
from app.routes.common import SUCCESS, bulk_delete
from src.models import (
    BulkDeleteResult,
    ContributionCreate,
    ContributionOut,
    GoalCreate,
    GoalOut,
    GoalUpdate,
    UserOut,
)
from src.orchestrator import LedgerServices


router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=list[GoalOut])
def list_goals(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> list[GoalOut]:
    return services.store.list_goals(user.id)


@router.post("", response_model=GoalOut, status_code=201)
def create_goal(
    body: GoalCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> GoalOut:
    goal = services.store.create_goal(user.id, body)
    services.audit.log_created(user.id, "savings_goal", goal.id)
    return goal


@router.delete("/bulk-delete", response_model=BulkDeleteResult)
def delete_all_goals(
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> BulkDeleteResult:
    return bulk_delete(services, user, "goals", "goal")


@router.post("/contributions", response_model=ContributionOut, status_code=201)
def record_contribution(
    body: ContributionCreate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> ContributionOut:
    return services.reconciler.record_contribution(user.id, body)


@router.delete("/contributions/{contribution_id}")
def delete_contribution(
    contribution_id: str,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> dict:
    services.reconciler.delete_contribution(user.id, contribution_id)
    return SUCCESS


@router.put("/{goal_id}", response_model=GoalOut)
def update_goal(
    goal_id: str,
    body: GoalUpdate,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> GoalOut:
    goal, fields = services.store.update_goal(user.id, goal_id, body)
    services.audit.log_updated(user.id, "savings_goal", goal.id, fields)
    return goal


@router.delete("/{goal_id}")
def archive_goal(
    goal_id: str,
    user: UserOut = Depends(get_current_user),
    services: LedgerServices = Depends(get_services),
) -> dict:
    services.store.archive_goal(user.id, goal_id)
    services.audit.log_deleted(user.id, "savings_goal", goal_id)
    return SUCCESS
