"""
LessonScribe - Command Line Entry Point

Summarizes a lesson transcript with a local Ollama model and prints (or
writes) the styled summary, or a full markdown/JSON export of the result.
"""

import argparse
import sys
from pathlib import Path

from lessonscribe.ai import OllamaClient
from lessonscribe.config import DEFAULT_PRESET, OLLAMA_API_BASE, OLLAMA_MODEL_NAME
from lessonscribe.exceptions import LessonScribeError
from lessonscribe.export import EXPORT_FORMATS, ExportedSummary, export_result, sanitize_filename
from lessonscribe.logging_config import close_debug_log, debug_timing, error, info
from lessonscribe.processing_config import (
    PROCESSING_PRESETS,
    estimate_processing_time,
    get_preset,
    load_processing_config,
)
from lessonscribe.storage import JsonFileResultStore
from lessonscribe.summarization import Document, StyleGuide, SummarizationOrchestrator, SummarizationResult


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lessonscribe",
        description="LessonScribe - Summarize lesson transcripts with a local LLM",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Summarize with the default preset and model
  lessonscribe --input lesson_03.txt

  # Faster preset, large-context model, custom voice
  lessonscribe --input lesson_03.txt --preset fast --model gemma3:4b --style studio_voice.yaml

  # Write the summary to a file and produce two alternate versions
  lessonscribe --input lesson_03.txt --output summary.md --regenerate 2

  # Export summaries, stats and extracted facts as JSON into a folder
  lessonscribe --input lesson_03.txt --format json --output exports/

  # Debug mode (verbose logging)
  DEBUG=true lessonscribe --input lesson_03.txt
        """
    )

    parser.add_argument('--input', required=True, help='Transcript text file (UTF-8)')
    parser.add_argument('--title', help='Document title (default: derived from the file name)')
    parser.add_argument(
        '--preset',
        default=DEFAULT_PRESET,
        choices=sorted(PROCESSING_PRESETS),
        help=f'Processing preset (default: {DEFAULT_PRESET})'
    )
    parser.add_argument('--config', help='Custom processing config YAML (overrides --preset)')
    parser.add_argument('--model', default=OLLAMA_MODEL_NAME, help=f'Ollama model (default: {OLLAMA_MODEL_NAME})')
    parser.add_argument('--host', default=OLLAMA_API_BASE, help=f'Ollama server URL (default: {OLLAMA_API_BASE})')
    parser.add_argument('--style', help='Style guide YAML file')
    parser.add_argument('--output', help='Write to this file (or into this directory) instead of stdout')
    parser.add_argument(
        '--format',
        default='summary',
        choices=['summary', *EXPORT_FORMATS],
        help='summary: styled summary only; markdown/json: full export with stats and facts (default: summary)'
    )
    parser.add_argument('--raw-output', help='Also write the raw (unstyled) summary to this file')
    parser.add_argument(
        '--regenerate',
        type=int,
        default=0,
        metavar='N',
        help='Generate N additional, deliberately different styled versions'
    )
    parser.add_argument('--save', action='store_true', help='Store the result JSON in the app results directory')
    return parser


def print_progress(current: int, total: int, status: str | None = None):
    print(f"[{current:3d}%] {status or ''}", file=sys.stderr)


def _write_or_print(text: str, output: Path | str | None, label: str):
    if output:
        Path(output).write_text(text, encoding="utf-8")
        info(f"Saved {label} to: {output}")
    else:
        print(text)


def _render(result: SummarizationResult, format_type: str) -> ExportedSummary:
    """Styled summary alone for "summary", otherwise a full export."""
    if format_type == "summary":
        return ExportedSummary(
            content=result.styled_summary,
            filename=f"{sanitize_filename(result.document.title)}_summary.md",
            mime_type="text/markdown",
        )
    return export_result(result, format_type)


def _output_path(output: str | None, rendered: ExportedSummary) -> Path | None:
    """An existing directory receives the rendered file's own filename."""
    if not output:
        return None
    path = Path(output)
    if path.is_dir():
        return path / rendered.filename
    return path


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the LessonScribe CLI.

    Returns:
        Process exit code (0 success, 1 pipeline error, 2 backend unavailable)
    """
    args = build_parser().parse_args(argv)

    if args.regenerate < 0:
        error("--regenerate must be zero or more")
        return 1

    try:
        config = load_processing_config(Path(args.config)) if args.config else get_preset(args.preset)
        style_guide = StyleGuide.from_yaml(Path(args.style)) if args.style else StyleGuide()
        document = Document.from_file(Path(args.input), title=args.title)

        backend = OllamaClient(api_base=args.host, model_name=args.model)
        if not backend.is_available():
            error(f"Ollama server is not reachable at {args.host}")
            return 2

        estimate = estimate_processing_time(config, document.metadata.word_count)
        info(
            f"Summarizing '{document.title}' ({document.metadata.word_count} words) "
            f"with {args.model}: {estimate['description']}"
        )

        store = JsonFileResultStore() if args.save else None
        orchestrator = SummarizationOrchestrator(backend, result_store=store, config=config)
        result = orchestrator.summarize_document(document, style_guide, on_progress=print_progress)

        rendered = _render(result, args.format)
        output_path = _output_path(args.output, rendered)
        _write_or_print(rendered.content, output_path, f"{args.format} output")
        if args.raw_output and result.raw_summary:
            _write_or_print(result.raw_summary, args.raw_output, "raw summary")

        for _ in range(args.regenerate):
            result = orchestrator.regenerate_styled_summary(result, style_guide)
            output = None
            if output_path:
                output = output_path.with_name(
                    f"{output_path.stem}_v{result.regeneration_count + 1}{output_path.suffix}"
                )
            _write_or_print(_render(result, args.format).content, output, f"regeneration #{result.regeneration_count}")

        stats = result.processing_stats
        debug_timing("Summarization run", stats.processing_time)
        print(
            f"Path: {result.path} | Chunks: {stats.successful_chunks}/{stats.total_chunks} "
            f"(failed: {stats.failed_chunks}) | Time: {stats.processing_time:.1f}s",
            file=sys.stderr,
        )
        return 0

    except (LessonScribeError, OSError, ValueError, KeyError) as e:
        error(f"Summarization failed: {e}")
        return 1

    finally:
        close_debug_log()


if __name__ == "__main__":
    sys.exit(main())
