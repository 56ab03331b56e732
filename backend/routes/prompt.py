"""Turn submission endpoint."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from backend import runtime
from story_relay.errors import RelayError, SettleTimeoutError, TurnInputError

from .models import PromptBody

router = APIRouter()

_STATUS = {
    "input": TurnInputError.status_code,
    "timeout": SettleTimeoutError.status_code,
}


@router.post("/prompt")
async def submit_prompt(body: PromptBody):
    """Record the player's turn and wait for the engine to finish it.

    200 {ok: true, updated} on success; 400 for blank input or an unknown
    story; 500 for engine failures; 504 when the log never settled.
    """
    outcome = await runtime.relay().submit(body.story_id, body.text)
    if outcome.ok:
        return outcome.to_response()
    status = _STATUS.get(outcome.kind or "", RelayError.status_code)
    return JSONResponse(outcome.to_response(), status_code=status)
