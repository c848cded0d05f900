"""Internal endpoints called by the scheduler."""

import hmac
import logging

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from passcut.core.app_exceptions import raise_app_error
from passcut.core.config import settings
from passcut.db.session import get_db
from passcut.release.service import run_auto_release
from passcut.schemas.release import AutoReleaseRunResult, AutoReleaseTriggerIn

logger = logging.getLogger(__name__)

router = APIRouter()


def _bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def require_cron_secret(
    x_auto_release_secret: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
) -> None:
    """Accept the shared secret via x-auto-release-secret or a bearer token."""
    secret = settings.AUTO_PASSCUT_CRON_SECRET
    provided = x_auto_release_secret or _bearer_token(authorization)
    if not secret or not provided or not hmac.compare_digest(provided, secret):
        logger.warning("Rejected auto-release trigger", extra={"event": "auto_release_forbidden"})
        raise_app_error(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Invalid auto-release secret")


@router.post(
    "/pass-cut-auto-release",
    response_model=AutoReleaseRunResult,
    dependencies=[Depends(require_cron_secret)],
)
def trigger_auto_release(
    request: AutoReleaseTriggerIn | None = None, db: Session = Depends(get_db)
) -> AutoReleaseRunResult:
    request = request or AutoReleaseTriggerIn()
    return run_auto_release(db, request.trigger, exam_id=request.exam_id, force=request.force)
