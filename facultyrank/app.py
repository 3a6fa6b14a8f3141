import argparse
import json
from dataclasses import replace
from pathlib import Path

from . import __version__
from .database import APPLICATION_STATUSES, init_database
from .env import Settings, load_env
from .errors import FacultyRankError, NotFoundError, ValidationError
from .logger import get_logger
from .prediction import PredictionService
from .rankings import PrestigeResolver
from .service import build_service


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str, ensure_ascii=False))


def _print_memoized(response) -> None:
    _print_json({"cache": response.cache_status, "data": response.value})


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> None:
    init_database(settings.db_path)
    print(f"Database ready: {settings.db_path}")


def cmd_predict(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        _print_json(service.predict(args.id))
    finally:
        service.close()


def cmd_batch_predict(args: argparse.Namespace, settings: Settings) -> None:
    ids = [i.strip() for i in args.ids.split(",") if i.strip()]
    service = build_service(settings)
    try:
        predictions = service.batch_predict(ids)
    finally:
        service.close()
    _print_json([
        {
            "application_id": p["application_id"],
            "score": p["score"],
            "confidence": p["confidence"],
            "category": p["category"],
            "features_used": p["features_used"],
        }
        for p in predictions
    ])


def cmd_top(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        _print_memoized(service.top_rankings(args.department, args.position, args.limit))
    finally:
        service.close()


def cmd_predictions(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        _print_memoized(service.predictions(args.id))
    finally:
        service.close()


def cmd_performance(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        _print_memoized(service.model_performance())
    finally:
        service.close()


def cmd_model_info(args: argparse.Namespace, settings: Settings) -> None:
    _print_json(PredictionService.model_info())


def cmd_set_status(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        application = service.update_status(args.id, args.status)
    finally:
        service.close()
    print(f"Application {application['id']}: status={application['status']}")


def cmd_resolve(args: argparse.Namespace, settings: Settings) -> None:
    # Table lookup only, no store or cache
    _print_json(PrestigeResolver().describe(args.institution))


def cmd_scopus(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        _print_memoized(service.scopus_author(args.scopus_id))
    finally:
        service.close()


def cmd_cache_clear(args: argparse.Namespace, settings: Settings) -> None:
    service = build_service(settings)
    try:
        removed = service.memoizer.invalidate(args.pattern)
        stats = service.cache.stats()
    finally:
        service.close()
    _print_json({"pattern": args.pattern, "removed": removed, "cache": stats})


def main():
    # Load .env if present (REDIS_URL, SCOPUS_API_KEY, FACULTYRANK_DB, etc.)
    load_env()
    parser = argparse.ArgumentParser(prog="facultyrank", description="Faculty application scoring and rankings")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--db", help="Path to SQLite database (default: $FACULTYRANK_DB or data/faculty.db)")

    subparsers = parser.add_subparsers(dest="command")

    ini = subparsers.add_parser("init-db", help="Create database tables")
    ini.set_defaults(func=cmd_init_db)

    prd = subparsers.add_parser("predict", help="Score one application and store the result")
    prd.add_argument("--id", required=True, help="Application id")
    prd.set_defaults(func=cmd_predict)

    bat = subparsers.add_parser("batch-predict", help="Score up to 50 applications")
    bat.add_argument("--ids", required=True, help="Comma-separated application ids")
    bat.set_defaults(func=cmd_batch_predict)

    top = subparsers.add_parser("top", help="Top ranked applications with prestige and research scores")
    top.add_argument("--department", help="Department filter ('All' for none)")
    top.add_argument("--position", help="Position filter ('All' for none)")
    top.add_argument("--limit", default="10", help="Page size (default 10, max 50)")
    top.set_defaults(func=cmd_top)

    hist = subparsers.add_parser("predictions", help="Prediction history for an application")
    hist.add_argument("--id", required=True, help="Application id")
    hist.set_defaults(func=cmd_predictions)

    perf = subparsers.add_parser("performance", help="Aggregate prediction statistics")
    perf.set_defaults(func=cmd_performance)

    info = subparsers.add_parser("model-info", help="Describe the scoring model")
    info.set_defaults(func=cmd_model_info)

    sts = subparsers.add_parser("set-status", help="Change an application's status")
    sts.add_argument("--id", required=True, help="Application id")
    sts.add_argument("--status", required=True, choices=APPLICATION_STATUSES)
    sts.set_defaults(func=cmd_set_status)

    res = subparsers.add_parser("resolve", help="Look up an institution's NIRF/QS prestige")
    res.add_argument("--institution", required=True, help="Institution name")
    res.set_defaults(func=cmd_resolve)

    sco = subparsers.add_parser("scopus", help="Fetch Scopus author metrics")
    sco.add_argument("--scopus-id", required=True, help="10-11 digit Scopus author id")
    sco.set_defaults(func=cmd_scopus)

    clr = subparsers.add_parser("cache-clear", help="Invalidate cached reads by glob pattern")
    clr.add_argument("--pattern", default="req:*", help="Key pattern (default: req:*)")
    clr.set_defaults(func=cmd_cache_clear)

    args = parser.parse_args()

    if args.version:
        print(__version__)
        return

    settings = Settings.from_env()
    if args.db:
        settings = replace(settings, db_path=Path(args.db))
    logger = get_logger()
    logger.set_level(settings.log_level)

    if hasattr(args, "func"):
        try:
            args.func(args, settings)
        except ValidationError as e:
            raise SystemExit(f"Invalid input: {e}")
        except NotFoundError as e:
            raise SystemExit(str(e))
        except FacultyRankError as e:
            raise SystemExit(f"Error: {e}")
        logger.log_metrics_summary()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
