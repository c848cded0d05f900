"""CLI entry point for scheduled and manual jobs."""

import json
import logging
import sys

import click

import passcut.models  # noqa: F401  (registers tables on Base.metadata)
from passcut.core.app_exceptions import AppError
from passcut.core.logging import setup_logging
from passcut.db.session import SessionLocal
from passcut.release.service import run_auto_release
from passcut.rescoring.service import manual_rescore
from passcut.schemas.release import ReleaseTrigger

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Pass-cut jobs.

    Example:
        python -m passcut.jobs.run pass_cut_auto_release --force
    """
    setup_logging()


@cli.command("pass_cut_auto_release")
@click.option("--exam-id", type=int, default=None, help="Exam to evaluate (default: latest active).")
@click.option("--force", is_flag=True, default=False, help="Bypass the traffic interval throttle.")
def pass_cut_auto_release(exam_id: int | None, force: bool):
    """Cron trigger for the auto-release evaluation."""
    db = SessionLocal()
    try:
        result = run_auto_release(db, ReleaseTrigger.CRON, exam_id=exam_id, force=force)
        click.echo(json.dumps(result.model_dump(mode="json", exclude={"rows"}), ensure_ascii=False))
    except Exception as e:
        logger.error(f"Job failed: {e}", exc_info=True)
        click.echo(f"Job failed: {e}", err=True)
        sys.exit(1)
    finally:
        db.close()


@cli.command("rescore")
@click.option("--exam-id", type=int, required=True)
@click.option("--track", type=click.Choice(["PUBLIC", "CAREER"]), default=None)
@click.option("--reason", type=str, default=None)
@click.option("--batch-size", type=int, default=None)
def rescore(exam_id: int, track: str | None, reason: str | None, batch_size: int | None):
    """Rescore every submission of an exam."""
    db = SessionLocal()
    try:
        result = manual_rescore(db, exam_id, track=track, reason=reason, batch_size=batch_size)
        click.echo(json.dumps(result, ensure_ascii=False))
    except AppError as e:
        click.echo(f"Job failed: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        logger.error(f"Job failed: {e}", exc_info=True)
        click.echo(f"Job failed: {e}", err=True)
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
