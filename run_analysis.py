#!/usr/bin/env python3
"""
CLI script to run the content analysis engine over HTML files.

Each file is analysed the same way a content body is analysed on creation:
readable text is extracted, then word count, reading time, auto-tags and a
suggested category are computed against the taxonomy file.

Settings come from CONTENT_ANALYSIS_* environment variables (a .env file is
loaded first); --parallel and --scoring override them for this run.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
load_dotenv()

from content_analysis.config import AnalysisSettings, KeywordScoring
from content_analysis.exceptions import TaxonomyFetchError
from content_analysis.main import ContentAnalyzer
from content_analysis.taxonomy import InMemoryTaxonomyRepository, JsonTaxonomyRepository


def main():
    parser = argparse.ArgumentParser(description="Analyze HTML content bodies")
    parser.add_argument("files", nargs="+", help="HTML files to process")
    parser.add_argument("--taxonomy", "-t", help="Taxonomy JSON file (list of {name, keywords})")
    parser.add_argument("--output", "-o", help="Output JSON file")
    parser.add_argument("--parallel", "-p", action="store_true",
                        help="Run metrics, tagging and classification concurrently")
    parser.add_argument("--scoring", choices=[s.value for s in KeywordScoring],
                        help="Keyword scoring mode for classification")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log pipeline progress")
    args = parser.parse_args()

    settings = AnalysisSettings.from_env()
    overrides = {}
    if args.parallel:
        overrides["parallel"] = True
    if args.scoring:
        overrides["keyword_scoring"] = KeywordScoring(args.scoring)
    if overrides:
        settings = settings.model_copy(update=overrides)

    # No taxonomy file means every body comes out "Uncategorized"
    if args.taxonomy:
        taxonomy = JsonTaxonomyRepository(args.taxonomy)
    else:
        taxonomy = InMemoryTaxonomyRepository()

    analyzer = ContentAnalyzer(taxonomy, settings=settings, log_level=settings.log_level if args.verbose else logging.WARNING)

    results = []
    exit_code = 0

    for filepath in args.files:
        path = Path(filepath)
        print(f"Analyzing: {path.name}", file=sys.stderr)

        try:
            markup = path.read_text(encoding="utf-8", errors="replace")
            result = analyzer.analyze(markup)
            results.append({
                "file": path.name,
                "status": "success",
                "analysis": result.to_response()
            })
            print(f"  ✓ {result.word_count} words, {result.reading_time} min, "
                  f"'{result.suggested_category}'", file=sys.stderr)

        except TaxonomyFetchError as e:
            # The taxonomy is shared by every file, so there is no point continuing
            print(f"  ✗ Taxonomy error: {e.message}", file=sys.stderr)
            results.append({"file": path.name, "status": "error", **e.to_response()})
            exit_code = 2
            break

        except OSError as e:
            results.append({
                "file": path.name,
                "status": "error",
                "error": str(e)
            })
            print(f"  ✗ Error: {e}", file=sys.stderr)
            exit_code = 1

    output = json.dumps(results, indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"\nSaved to: {args.output}", file=sys.stderr)
    else:
        print(output)

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
