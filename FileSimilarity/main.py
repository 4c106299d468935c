import argparse
import logging
import sys
from typing import List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from FileSimilarity.config import WEIGHTINGS, load_config, validate_config
from FileSimilarity.errors import InputError
from FileSimilarity.preprocessing.document import FileEntry
from FileSimilarity.scanner import scan_paths
from FileSimilarity.similarity.similarity import SimilarityRanker, SimilarityResult
from FileSimilarity.telemetry import configure_tracing, shutdown_tracing

# Status and log output go to stderr, results to stdout
console = Console(stderr=True)
tracer = trace.get_tracer(__name__)


def configure_logging(verbosity: int = 0) -> None:
    """WARNING by default, INFO with -v, DEBUG with -vv."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="file-similarity",
        description="Find similarly named files using cosine similarity of name tokens"
    )
    parser.add_argument('paths', nargs='*',
                        help="Directories or files to compare ('-' reads one per line from stdin)")
    parser.add_argument('--names', action='store_true',
                        help='Treat the inputs as literal file names instead of paths')
    parser.add_argument('-t', '--threshold', type=float,
                        help='Report only pairs scoring above this value (default from config: 0.0)')
    parser.add_argument('-a', '--all', action='store_true',
                        help='Report every pair, including 0.0 scores')
    parser.add_argument('-k', '--top-k', type=int,
                        help='Keep at most the K best matches of each file')
    parser.add_argument('-r', '--reverse', action='store_true',
                        help='Print results in ascending score order')
    parser.add_argument('-l', '--ngram', type=int, choices=[1, 2, 3, 4],
                        help='Number of consecutive tokens joined into one term')
    parser.add_argument('-p', '--pattern',
                        help='File names must match this regular expression')
    parser.add_argument('--contents', action='store_true',
                        help='Compare file contents instead of file names')
    parser.add_argument('--weighting', choices=WEIGHTINGS,
                        help='Term weighting scheme')
    parser.add_argument('--dedupe', action='store_true',
                        help='Drop repeated names before ranking')
    parser.add_argument('--both-orderings', action='store_true',
                        help='Print each pair in both directions')
    parser.add_argument('--workers', type=int,
                        help='Worker threads for pair scoring')
    parser.add_argument('--format', choices=['tsv', 'table'], default='tsv',
                        help='Output format')
    parser.add_argument('--summary', action='store_true',
                        help='Print the pair count and matched size to stderr')
    parser.add_argument('--config', help='Path to a JSON configuration file')
    parser.add_argument('-v', '--verbose', action='count', default=0,
                        help='Increase log verbosity (-v info, -vv debug)')
    return parser


def apply_overrides(config: dict, args: argparse.Namespace) -> dict:
    """Fold command-line options into the loaded configuration."""
    ranking = config["ranking"]
    preproc = config["preprocessing"]

    if args.all:
        ranking["threshold"] = None
    elif args.threshold is not None:
        ranking["threshold"] = args.threshold
    if args.top_k is not None:
        ranking["top_k"] = args.top_k
    if args.weighting:
        ranking["weighting"] = args.weighting
    if args.dedupe:
        ranking["deduplicate"] = True
    if args.workers is not None:
        ranking["workers"] = args.workers
    if args.ngram is not None:
        preproc["ngram"] = args.ngram
    if args.pattern is not None:
        config["scan"]["pattern"] = args.pattern

    validate_config(config)
    return config


def read_inputs(paths: List[str]) -> List[str]:
    inputs = []
    for path in paths:
        if path == '-':
            names = (line.rstrip('\r\n') for line in sys.stdin)
            inputs.extend(name for name in names if name)
        else:
            inputs.append(path)
    return inputs


def collect_entries(args: argparse.Namespace, config: dict) -> List[FileEntry]:
    if not args.paths:
        raise InputError("No input given: pass directories, files, or --names with a list of names")

    inputs = read_inputs(args.paths)
    if args.names:
        return [FileEntry(name) for name in inputs]

    return scan_paths(inputs, pattern=config["scan"]["pattern"], contents=args.contents)


TSV_ESCAPES = str.maketrans({"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r"})


def tsv_field(value: str) -> str:
    return value.translate(TSV_ESCAPES)


def display_results(results: List[SimilarityResult], output_format: str = 'tsv') -> None:
    """Print results as tab-separated lines or as a rich table."""
    if output_format == 'table':
        table = Table(
            box=box.HEAVY_EDGE,
            show_header=True,
            header_style="bold magenta",
            title=f"[bold]{len(results)} similar pair(s)[/bold]",
            title_style="yellow"
        )
        table.add_column("File A", style="cyan")
        table.add_column("File B", style="cyan")
        table.add_column("Score", style="yellow", justify="right")

        for result in results:
            score_str = f"{result.score:.4f}"
            if result.score > 0.7:
                score_str = f"[bold green]{score_str}[/bold green]"
            table.add_row(escape(result.first), escape(result.second), score_str)

        Console().print(table)
        return

    for result in results:
        print(f"{tsv_field(result.first)}\t{tsv_field(result.second)}\t{result.score:.4f}")


def run(args: argparse.Namespace) -> int:
    with tracer.start_as_current_span("run") as span:
        try:
            config = apply_overrides(load_config(args.config), args)
            entries = collect_entries(args, config)
            span.set_attribute("run.entries", len(entries))

            ranker = SimilarityRanker.from_config(config, both_orderings=args.both_orderings)
            results = ranker.rank_entries(entries)
        except InputError as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
            return 1

        if args.reverse:
            results.reverse()

        display_results(results, args.format)

        if args.summary:
            total_size = sum(result.size for result in results)
            console.print(f"total count = {len(results)}, total size = {total_size}")

        span.set_attribute("run.pairs", len(results))
        return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        provider = configure_tracing()
    except InputError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        return 1

    try:
        return run(args)
    finally:
        shutdown_tracing(provider)


if __name__ == "__main__":
    sys.exit(main())
