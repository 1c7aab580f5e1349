from fastapi import APIRouter, Depends, status
from celery.result import AsyncResult

from astra_pos.database import Database, get_database
from astra_pos.api.deps import current_identity
from astra_pos.schemas.advisor import InsightRequest, InsightTaskResponse, InsightResultResponse
from astra_pos.schemas.auth import Identity
from astra_pos.services.advisor_service import take_snapshot
from astra_pos.tasks.advisor_tasks import generate_insights
from astra_pos.tasks.celery_app import celery_app

router = APIRouter(prefix="/advisor", tags=["Advisor"])


@router.post(
    "/insights",
    response_model=InsightTaskResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Ask the business advisor",
    description="""
    Queue a question for the AI business advisor.

    A snapshot of the catalog and sale history is taken now and handed to a
    background Celery task, so the provider's latency never blocks sales.
    Poll `GET /advisor/insights/{task_id}` for the answer.
    """
)
def ask_advisor(
    request: InsightRequest,
    identity: Identity = Depends(current_identity),
    database: Database = Depends(get_database)
):
    """Queue an advisor question."""
    products, sales = take_snapshot(database)
    task = generate_insights.delay(request.query, products, sales)
    return InsightTaskResponse(task_id=task.id, status="queued")


@router.get(
    "/insights/{task_id}",
    response_model=InsightResultResponse,
    summary="Get an advisor answer"
)
def get_insight(task_id: str):
    """
    Get the state of an advisor task.

    While the task runs, only its Celery state is returned. A finished task
    carries either the answer text or the failure kind
    (`not_configured` or `provider_error`).
    """
    result = AsyncResult(task_id, app=celery_app)

    if not result.ready():
        return InsightResultResponse(task_id=task_id, status=result.status.lower())

    if result.failed():
        return InsightResultResponse(
            task_id=task_id,
            status="failed",
            error="provider_error",
            message=str(result.result)
        )

    return InsightResultResponse(task_id=task_id, **result.result)
