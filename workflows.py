"""Weekly industry-insight refresh, driven by an external workflow orchestrator.

The orchestrator owns the cron trigger and retries. This module owns the
steps: ``fetch-industries`` once per run, then one
``update-<industry>-insights`` step per industry. A failing industry step is
recorded and skipped so the rest of the batch still refreshes; the returned
``RefreshReport`` lists what failed so only those steps need a retry.
"""
from __future__ import annotations

import asyncio
import inspect
import uuid
from datetime import timedelta
from typing import Any, Awaitable, Callable, List, Optional, Union

import structlog
from aws_embedded_metrics import metric_scope
from sqlalchemy.orm import Session

import crud
import llm_interaction
import schemas
from database import session_scope
from errors import CareerCoachError, NotFoundError
from settings import get_settings

logger = structlog.get_logger(__name__)

REFRESH_FUNCTION = schemas.WorkflowFunction(
    id="generate-industry-insights",
    name="Generate Industry Insights",
    cron="0 0 * * 0",  # Sundays at midnight
    steps=["fetch-industries", "update-<industry>-insights"],
)
FUNCTIONS = {REFRESH_FUNCTION.id: REFRESH_FUNCTION}


class StepError(CareerCoachError):
    def __init__(self, step_id: str, cause: BaseException) -> None:
        self.step_id = step_id
        self.cause = cause
        super().__init__(f"Step {step_id} failed: {cause}")


class StepRunner:
    """Runs named steps for one workflow run and logs their outcome."""

    def __init__(self, run_id: Optional[str] = None) -> None:
        self.run_id = run_id or uuid.uuid4().hex

    async def run(self, step_id: str, fn: Callable[..., Union[Any, Awaitable[Any]]], *args, **kwargs) -> Any:
        log = logger.bind(run_id=self.run_id, step=step_id)
        log.info("Step started")
        try:
            result = fn(*args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            log.error("Step failed", error=str(exc), exc_info=True)
            raise StepError(step_id, exc) from exc
        log.info("Step finished")
        return result


def _fetch_industries(session_factory=None) -> List[str]:
    with session_scope(session_factory) as db:
        return crud.list_insight_industries(db)


async def _refresh_industry(industry: str, session_factory=None) -> None:
    data = await llm_interaction.generate_industry_insights(industry)
    interval = timedelta(days=get_settings().insight_refresh_interval_days)
    with session_scope(session_factory) as db:
        crud.upsert_industry_insight(db, industry, data, interval=interval)


@metric_scope
async def refresh_industry_insights(
    run_id: Optional[str] = None,
    industries: Optional[List[str]] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    metrics=None,
) -> schemas.RefreshReport:
    """Regenerate the insight row of every known industry, one at a time.

    ``industries`` narrows the run to a subset (used when retrying failures).
    A failure of ``fetch-industries`` aborts the run; per-industry failures
    are collected in the report.
    """
    metrics.set_namespace("CareerCoachInsights")
    runner = StepRunner(run_id)
    metrics.set_property("run_id", runner.run_id)
    report = schemas.RefreshReport(
        run_id=runner.run_id, function=REFRESH_FUNCTION.id, started_at=crud.utcnow()
    )

    known = await runner.run("fetch-industries", _fetch_industries, session_factory)
    targets = [i for i in known if industries is None or i in industries]
    logger.info("Refreshing industry insights", run_id=runner.run_id, industry_count=len(targets))

    for industry in targets:
        step_id = f"update-{industry}-insights"
        try:
            await runner.run(step_id, _refresh_industry, industry, session_factory)
        except StepError as exc:
            report.failed.append(schemas.StepFailure(industry=industry, step=step_id, error=str(exc.cause)))
            continue
        report.refreshed.append(industry)

    report.finished_at = crud.utcnow()
    metrics.put_metric("insights_refreshed", len(report.refreshed), "Count")
    metrics.put_metric("insights_failed", len(report.failed), "Count")
    logger.info(
        "Industry insight refresh finished",
        run_id=runner.run_id,
        refreshed=len(report.refreshed),
        failed=len(report.failed),
    )
    return report


async def invoke(invocation: schemas.WorkflowInvocation) -> schemas.RefreshReport:
    if invocation.function not in FUNCTIONS:
        raise NotFoundError(f"Unknown workflow function: {invocation.function}")
    return await refresh_industry_insights(run_id=invocation.run_id, industries=invocation.industries)


if __name__ == "__main__":
    from observability import init_observability

    init_observability()
    result = asyncio.run(refresh_industry_insights())
    print(result.model_dump_json(indent=2))
