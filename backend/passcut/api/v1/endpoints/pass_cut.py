"""Pass-cut history read and manual release publication."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from passcut.db.session import get_db
from passcut.models.exam import Track
from passcut.release.history import get_pass_cut_history
from passcut.release.service import publish_admin_release
from passcut.schemas.release import AdminReleaseRequest, PassCutHistory, PassCutReleaseCreated

router = APIRouter()


@router.get("/pass-cut-history", response_model=PassCutHistory)
def read_pass_cut_history(
    region_id: int = Query(ge=1),
    track: Track = Query(),
    exam_id: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
) -> PassCutHistory:
    """Released snapshots for one region/track; also nudges the traffic-triggered auto release."""
    return get_pass_cut_history(db, region_id, track, exam_id=exam_id)


@router.post(
    "/admin/pass-cut-releases",
    response_model=PassCutReleaseCreated,
    status_code=status.HTTP_201_CREATED,
)
def create_admin_release(request: AdminReleaseRequest, db: Session = Depends(get_db)) -> PassCutReleaseCreated:
    memo = request.memo.strip() if request.memo and request.memo.strip() else None
    return publish_admin_release(
        db,
        exam_id=request.exam_id,
        release_number=request.release_number,
        admin_user_id=request.admin_user_id,
        memo=memo,
        auto_notice=request.auto_notice,
    )
