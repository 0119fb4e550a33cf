"""Convenience entry point for running the Celery worker with embedded beat.

Production deployments usually run ``celery -A infrastructure.tasks worker``
and ``celery -A infrastructure.tasks beat`` separately; this script keeps a
single-process runner handy for local use.
"""
from __future__ import annotations

from .config.celery import celery_app


def main() -> None:
    celery_app.worker_main(
        argv=["worker", "--beat", "--hostname=worker@%h", "--loglevel=INFO"],
    )


if __name__ == "__main__":
    main()
