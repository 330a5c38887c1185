#!/usr/bin/env python3
"""Command-line interface for batch grading submission files."""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from easygrader.libs.config_loader import ConfigType, get_config, load_default_configs
from easygrader.libs.extraction import Submission
from .batch_grader import BatchGrader
from .errors import FatalRunError
from .prompts import POLICY_TEMPLATES, get_policy_template
from .report import DEFAULT_CSV_FILENAME, save_summary, write_csv

LOG = logging.getLogger(__name__)

MIN_API_KEY_LENGTH = 11

API_KEY_ENV_VARS = {
    "google": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
}


def resolve_api_key(cli_key: Optional[str], configs: ConfigType) -> str:
    """Pick the API key from the command line, config, or environment, in that order."""
    api_key = cli_key or get_config("llm.api_key", configs, default=None)
    if not api_key:
        provider = get_config("llm.provider", configs, default="google")
        for env_var in API_KEY_ENV_VARS.get(provider, ()):
            api_key = os.environ.get(env_var)
            if api_key:
                break
    api_key = (api_key or "").strip()
    if len(api_key) < MIN_API_KEY_LENGTH:
        raise ValueError("Please enter a valid API key.")
    return api_key


def resolve_policy(policy_file: Optional[Path], template: Optional[str], configs: ConfigType) -> str:
    """Policy text from a file, a named template, or the configured template."""
    if policy_file:
        return policy_file.read_text(encoding="utf-8")
    name = template or get_config("grading.policy_template", configs, default="coding")
    return get_policy_template(name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Grade student submissions (PDF, notebook, or text) against a rubric',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Grade every notebook in a folder with the default (coding) policy
  grade-files --assignment hw1.pdf --rubric rubric.txt submissions/*.ipynb

  # Use the writing policy template and save to a custom CSV
  grade-files -a essay.txt -r rubric.pdf --policy-template writing -o essays.csv essays/*.pdf

  # Use your own policy text and a YAML summary
  grade-files -a hw.pdf -r rubric.pdf --policy-file my_policy.md --summary summary.yaml subs/*
        """
    )

    # Required arguments
    parser.add_argument(
        'submissions',
        type=Path,
        nargs='+',
        help='Student submission files'
    )
    parser.add_argument(
        '--assignment', '-a',
        type=Path,
        required=True,
        help='Original assignment specification file'
    )
    parser.add_argument(
        '--rubric', '-r',
        type=Path,
        required=True,
        help='Grading rubric file'
    )

    # Optional arguments
    parser.add_argument(
        '--api-key', '-k',
        type=str,
        default=None,
        help='Model provider API key (default: llm.api_key in config, then environment)'
    )
    policy_group = parser.add_mutually_exclusive_group()
    policy_group.add_argument(
        '--policy-file', '-p',
        type=Path,
        default=None,
        help='File containing the grading policy and feedback tone'
    )
    policy_group.add_argument(
        '--policy-template',
        choices=sorted(POLICY_TEMPLATES),
        default=None,
        help='Built-in grading policy (default: grading.policy_template in config)'
    )
    parser.add_argument(
        '--output', '-o',
        type=Path,
        default=Path(DEFAULT_CSV_FILENAME),
        help=f'CSV report path (default: {DEFAULT_CSV_FILENAME})'
    )
    parser.add_argument(
        '--summary',
        type=Path,
        default=None,
        help='Optional YAML summary path'
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=None,
        help='Extra YAML config file merged over the defaults'
    )
    parser.add_argument(
        '--model', '-m',
        type=str,
        default=None,
        help='Model to use (overrides config value)'
    )
    parser.add_argument(
        '--batch-size', '-b',
        type=int,
        default=None,
        help='Submissions graded concurrently per batch (overrides config value)'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Exit with an error status if any submission fails'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point for grade-files command."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args(argv)

    # Set logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Validate inputs
    for label, path in [("Assignment", args.assignment), ("Rubric", args.rubric)] + \
            [("Submission", p) for p in args.submissions]:
        if not path.is_file():
            LOG.error(f"{label} file does not exist: {path}")
            sys.exit(1)

    # Load configuration
    try:
        config = load_default_configs(args.config)
        api_key = resolve_api_key(args.api_key, config)
        policy = resolve_policy(args.policy_file, args.policy_template, config)
    except (ValueError, KeyError, TypeError, OSError) as e:
        LOG.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    try:
        batch_grader = BatchGrader(
            configs=config,
            api_key=api_key,
            model=args.model,
            batch_size=args.batch_size,
        )
    except Exception as e:
        LOG.error(f"Failed to initialize batch grader: {e}")
        sys.exit(1)

    try:
        spec_doc = Submission.from_path(args.assignment)
        rubric_doc = Submission.from_path(args.rubric)
    except OSError as e:
        LOG.error(f"A critical error occurred: {e}. Grading has been stopped.")
        sys.exit(1)

    try:
        submissions = [Submission.from_path(p) for p in args.submissions]
    except OSError as e:
        LOG.error(f"Failed to read submission: {e}")
        sys.exit(1)

    LOG.info(f"Grading {len(submissions)} submission(s) against {args.rubric.name}")
    try:
        grading_run = batch_grader.grade_all(
            submissions, policy, spec_doc, rubric_doc, show_progress=True
        )
    except FatalRunError as e:
        LOG.error(f"A critical error occurred: {e}. Grading has been stopped.")
        sys.exit(1)

    write_csv(grading_run.results, args.output)
    if args.summary:
        try:
            save_summary(grading_run, args.summary)
            LOG.info(f"Summary saved to: {args.summary}")
        except OSError as e:
            LOG.error(f"Failed to save summary: {e}")

    print(f"\n{'='*60}")
    print("Grading Complete")
    print(f"{'='*60}")
    print(f"Total submissions: {grading_run.total}")
    print(f"Successfully graded: {len(grading_run.results)}")
    print(f"Failed: {len(grading_run.errors)}")
    if grading_run.cancelled:
        print("Run was cancelled before all batches finished.")
    for result in grading_run.results:
        print(f"  {result.filename}: {result.total_score}")
    if grading_run.has_failures:
        print(f"\n{grading_run.failure_summary()}")
    print(f"\nCSV report saved to: {args.output}")

    if grading_run.has_failures and args.strict:
        sys.exit(1)


if __name__ == "__main__":
    main()
