"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    AlarmActionRequest,
    AlarmRecord,
    MonitoringConfiguration,
    MonitoringConfigurationUpdate,
    PassSummary,
)
from services.alarm_history import AlarmHistoryService, build_default_alarm_history
from services.monitor import AlarmMonitor, build_default_monitor
from storage.configurations import MockConfigurationStore, build_default_configuration_store

router = APIRouter()


def get_monitor() -> AlarmMonitor:
    return build_default_monitor()


def get_history() -> AlarmHistoryService:
    return build_default_alarm_history()


def get_configuration_store() -> MockConfigurationStore:
    return build_default_configuration_store()


def _actor(request: Optional[AlarmActionRequest]) -> str:
    return request.actor if request is not None else "system"


@router.get(
    "/alarms",
    response_model=List[AlarmRecord],
    summary="List alarms, newest first.",
)
async def list_alarms(
    resolved: Optional[bool] = Query(None, description="Filter on resolution state."),
    history: AlarmHistoryService = Depends(get_history),
) -> List[AlarmRecord]:
    return history.list_alarms(resolved=resolved)


@router.post(
    "/alarms/check",
    response_model=PassSummary,
    summary="Run an evaluation pass immediately.",
)
def run_check(monitor: AlarmMonitor = Depends(get_monitor)) -> PassSummary:
    return monitor.run_evaluation_pass()


@router.get(
    "/alarms/{alarm_id}",
    response_model=AlarmRecord,
    summary="Fetch a single alarm.",
)
async def get_alarm(
    alarm_id: str,
    history: AlarmHistoryService = Depends(get_history),
) -> AlarmRecord:
    try:
        return history.get_alarm(alarm_id)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]),
        ) from exc


@router.post(
    "/alarms/{alarm_id}/acknowledge",
    response_model=AlarmRecord,
    summary="Acknowledge an alarm.",
)
async def acknowledge_alarm(
    alarm_id: str,
    request: Optional[AlarmActionRequest] = None,
    history: AlarmHistoryService = Depends(get_history),
) -> AlarmRecord:
    try:
        return history.acknowledge(alarm_id, actor=_actor(request))
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.post(
    "/alarms/{alarm_id}/resolve",
    response_model=AlarmRecord,
    summary="Resolve an alarm.",
)
async def resolve_alarm(
    alarm_id: str,
    request: Optional[AlarmActionRequest] = None,
    history: AlarmHistoryService = Depends(get_history),
) -> AlarmRecord:
    try:
        return history.resolve(alarm_id, actor=_actor(request))
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


@router.get(
    "/users/{user_id}/alarm-settings",
    response_model=MonitoringConfiguration,
    summary="Fetch a user's alarm settings, creating the defaults on first access.",
)
async def get_alarm_settings(
    user_id: str,
    store: MockConfigurationStore = Depends(get_configuration_store),
) -> MonitoringConfiguration:
    configuration = store.get_configuration(user_id)
    if configuration is None:
        configuration = MonitoringConfiguration(user_id=user_id)
        store.put_configuration(configuration)
    return configuration


@router.put(
    "/users/{user_id}/alarm-settings",
    response_model=MonitoringConfiguration,
    summary="Create or replace a user's alarm settings.",
)
async def put_alarm_settings(
    user_id: str,
    update: MonitoringConfigurationUpdate,
    store: MockConfigurationStore = Depends(get_configuration_store),
) -> MonitoringConfiguration:
    configuration = MonitoringConfiguration(user_id=user_id, **update.model_dump())
    store.put_configuration(configuration)
    return configuration


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
