#!/usr/bin/env python3
"""
JobFit command-line analyzer

Analyze a single job posting against your saved resume profiles and wait
for the result.

Usage:
    python analyze_job.py --url https://example.com/jobs/123
    python analyze_job.py --text-file posting.txt
    python analyze_job.py --url https://example.com/jobs/123 --identity user-42
    python analyze_job.py --list            # Show stored jobs
"""

import asyncio
import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from pydantic import ValidationError

from jobfit.main import configure_logging
from jobfit.models.job import Job, JobSource
from jobfit.services.pipeline import create_job_pipeline


def print_job(job: Job) -> None:
    print(f"🆔 {job.id}  [{job.status}]  {job.created_at:%Y-%m-%d %H:%M}")
    print(f"   Source: {job.source.kind} - {job.source.value[:80]}")
    if job.result:
        result = job.result
        distilled = result.distilled_job
        if distilled:
            print(f"   Role: {distilled.role_title} @ {distilled.company_name}")
        print(f"   Score: {result.compatibility_score}/100 (profile {result.best_resume_profile_id})")
    if job.error_message:
        print(f"   Error: {job.error_message}")


def print_analysis(job: Job) -> None:
    result = job.result
    print()
    print("=" * 60)
    print(f"✅ COMPATIBILITY: {result.compatibility_score}/100")
    print("=" * 60)
    if result.reasoning:
        print(f"\n{result.reasoning}")
    if result.strengths:
        print("\n💪 Strengths:")
        for item in result.strengths:
            print(f"   • {item}")
    if result.weaknesses:
        print("\n⚠️  Gaps:")
        for item in result.weaknesses:
            print(f"   • {item}")
    if result.tailoring_instructions:
        print("\n✏️  Tailoring:")
        for item in result.tailoring_instructions:
            print(f"   • {item}")
    if result.recommended_block_ids:
        print(f"\n📌 Blocks to include: {', '.join(result.recommended_block_ids)}")
    print()


def read_source(args: argparse.Namespace) -> JobSource:
    if args.url:
        return JobSource.url(args.url)
    return JobSource.text(Path(args.text_file).read_text(encoding="utf-8"))


async def run(args: argparse.Namespace) -> int:
    source = None
    if not args.list:
        try:
            source = read_source(args)
        except (OSError, UnicodeDecodeError) as e:
            print(f"⛔ Cannot read job description: {e}")
            return 2
        except ValidationError:
            print("⛔ The job posting is empty.")
            return 2

    pipeline = create_job_pipeline()
    await pipeline.load()

    if args.list:
        jobs = pipeline.jobs
        if not jobs:
            print("No jobs stored yet.")
        for job in jobs:
            print_job(job)
        return 0

    identity = None
    if args.identity:
        identity = await pipeline.ledger.resolve_identity(args.identity)

    outcome = await pipeline.submit(source, identity)
    if not isinstance(outcome, Job):
        print(f"⛔ Not admitted: {outcome.reason} (limit {outcome.limit})")
        return 2

    print(f"🚀 Analyzing job {outcome.id}...")
    queue = pipeline.notifier.subscribe()
    waiter = asyncio.create_task(pipeline.join())
    while not waiter.done() or not queue.empty():
        try:
            notification = await asyncio.wait_for(queue.get(), timeout=0.5)
        except asyncio.TimeoutError:
            continue
        print(f"   [{notification.level}] {notification.message}")
    pipeline.notifier.unsubscribe(queue)

    job = pipeline.get(outcome.id)
    if job.status != "completed":
        print(f"❌ Analysis failed: {job.error_message}")
        return 1

    print_analysis(job)
    return 0


def main():
    parser = argparse.ArgumentParser(description="JobFit job posting analyzer")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--url", help="Job posting URL to fetch")
    source.add_argument("--text-file", help="File containing the pasted job description")
    source.add_argument("--list", action="store_true", help="List stored jobs and exit")
    parser.add_argument("--identity", help="User id to charge against usage limits")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args()

    configure_logging(args.log_level)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
