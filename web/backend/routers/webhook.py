#!/usr/bin/env python3
"""
Webhook intake endpoint.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from core.workflow import WorkflowEngine
from ..dependencies import get_workflow_engine
from ..models.responses import IntakeResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["intake"])


@router.post("/")
def receive_webhook(
    payload: Any = Body(None),
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """
    Receive a form-provider webhook.

    A body carrying `challenge` is the provider's URL verification handshake
    and is echoed back. Anything else is an intake event.
    """
    if isinstance(payload, dict) and 'challenge' in payload:
        logger.info("Answering webhook challenge")
        return {"challenge": payload['challenge']}

    result = engine.start(payload)
    return IntakeResponse(
        message="Submission already received" if result.duplicate else "Submission received",
        instance_id=result.instance_id,
        identity=result.identity,
        state=result.state.value if result.state else None,
        duplicate=result.duplicate
    )
