import argparse
import sqlite3
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import TypeAdapter

from config import load_config
from db.database import Store
from db.errors import StoreError
from models.problem import ProblemCreate
from utils.clock import humanize_interval
from utils.scheduler import Scheduler
from utils.stats import get_counts, stars

STAR_WIDTH = 65

def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level)

def read_problem_file(path: Path) -> List[ProblemCreate]:
    """Parse a JSON list of {"question", "answer"[, "next_due", "interval"]} objects."""
    with open(path, "rb") as f:
        return TypeAdapter(List[ProblemCreate]).validate_json(f.read())

def cmd_create(args, config) -> int:
    with Store.create(args.db, args.kind or config["store"]["kind"]):
        pass
    print(f"Created {args.db}")
    return 0

def cmd_load(args, config) -> int:
    problems = read_problem_file(args.file)
    # Open if present, otherwise create it.
    if args.db.exists():
        store = Store.open(args.db)
    else:
        store = Store.create(args.db, args.kind or config["store"]["kind"])
    with store:
        with store.begin() as pop:
            if args.wipe:
                pop.wipe()
            for prob in problems:
                if prob.is_learning:
                    pop.add_learning(prob.question, prob.answer, prob.next_due, prob.interval)
                else:
                    pop.add(prob.question, prob.answer)
    print(f"Loaded {len(problems)} problems into {args.db}")
    return 0

def cmd_due(args, config) -> int:
    count = args.count if args.count is not None else config["scheduler"]["batch_size"]
    with Store.open(args.db) as store:
        probs = Scheduler(store).get_next(count)
    if not probs:
        print("No more problems to learn")
        return 0
    for prob in probs:
        marker = " NEW" if prob.is_new else ""
        print(f"{prob.id:>5}  {prob.question}{marker}  ({humanize_interval(prob.interval)})")
    return 0

def cmd_grade(args, config) -> int:
    with Store.open(args.db) as store:
        scheduler = Scheduler(store)
        prob = scheduler.get_problem(args.item_id)
        if prob is None:
            print(f"No problem with id {args.item_id}", file=sys.stderr)
            return 1
        updated = scheduler.update(prob, args.factor)
    print(f"{updated.question}: next in {humanize_interval(updated.interval)}")
    return 0

def cmd_stats(args, config) -> int:
    with Store.open(args.db) as store:
        counts = get_counts(store)
    print(f"Active: {counts.active}, Later: {counts.later}, Unlearned: {counts.unlearned}")
    for bucket in counts.buckets:
        bar = stars(STAR_WIDTH, bucket.count, counts.scheduled)
        print(f"  {bucket.name:<4}: {bucket.count} {bar}")
    print(f"  active : {counts.learning}")
    print(f"  learned: {counts.learned}")
    return 0

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Spaced repetition problem store")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_db(p):
        p.add_argument("db", nargs="?", type=Path, help="Store file (default: store.path from config)")

    p = sub.add_parser("create", help="Create an empty store")
    add_db(p)
    p.add_argument("--kind", help="How problems are presented (default: store.kind from config)")
    p.set_defaults(func=cmd_create)

    p = sub.add_parser("load", help="Load problems from a JSON file")
    p.add_argument("file", type=Path)
    add_db(p)
    p.add_argument("--wipe", action="store_true", help="Replace all existing problems")
    p.add_argument("--kind", help="Kind used if the store has to be created")
    p.set_defaults(func=cmd_load)

    p = sub.add_parser("due", help="List the problems to ask next")
    add_db(p)
    p.add_argument("--count", type=int, help="How many to list (default: scheduler.batch_size)")
    p.set_defaults(func=cmd_due)

    p = sub.add_parser("grade", help="Record a 1-4 grade for one problem")
    p.add_argument("item_id", type=int)
    p.add_argument("factor", type=int, choices=[1, 2, 3, 4])
    add_db(p)
    p.set_defaults(func=cmd_grade)

    p = sub.add_parser("stats", help="Show learning progress")
    add_db(p)
    p.set_defaults(func=cmd_stats)
    return parser

def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    configure_logging(config["logging"]["level"])
    if args.db is None:
        args.db = config["store"]["path"]
    try:
        return args.func(args, config)
    except (StoreError, ValueError, FileNotFoundError, sqlite3.Error) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

if __name__ == "__main__":
    sys.exit(main())
