import argparse
import logging
import os
import sys

from .core.constants import MAX_TRANSLATE_CONCURRENCY


def setup_logging(log_level: str = "INFO") -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("llama_index").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def _concurrency(value: str) -> int:
    n = int(value)
    if n < 1 or n > MAX_TRANSLATE_CONCURRENCY:
        raise argparse.ArgumentTypeError(f"concurrency must be in 1..{MAX_TRANSLATE_CONCURRENCY}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="astloom",
        description="astloom - translate repositories between languages over a unified AST",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: from config)"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Shortcut for --log-level DEBUG")
    parser.add_argument("--config", type=str, default=None, help="Path to astloom.yaml")

    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Parse a repository into a unified AST JSON file")
    p_parse.add_argument("path", help="Source directory or tree JSON file")
    p_parse.add_argument("-l", "--language", default="", help="Source language")
    p_parse.add_argument("-o", "--output", required=True, help="Output JSON path")

    p_tr = sub.add_parser("translate", help="Translate a repository into another language")
    p_tr.add_argument("path", help="Source directory or tree JSON file")
    p_tr.add_argument("-s", "--source-lang", default="", help="Source language (default: inferred)")
    p_tr.add_argument("-t", "--target-lang", required=True, help="Target language")
    p_tr.add_argument("-o", "--output", default="", help="Output directory for generated code")
    p_tr.add_argument("--work-dir", default="", help="Directory for checkpoints and tree artifacts")
    p_tr.add_argument("--module-name", default="", help="Target module name")
    p_tr.add_argument("--concurrency", type=_concurrency, default=None, help="Parallel LLM calls")
    p_tr.add_argument("--sequential", action="store_true", help="Translate one node at a time")
    p_tr.add_argument("--continue-on-error", action="store_true", help="Skip nodes that fail")
    p_tr.add_argument("--persist", action="store_true", help="Write target_ast_<n>.json artifacts")
    p_tr.add_argument("--checkpoint", action="store_true", help="Save pipeline state after each step")

    p_write = sub.add_parser("write", help="Write a unified AST JSON file back to source code")
    p_write.add_argument("path", help="Tree JSON file")
    p_write.add_argument("-o", "--output", required=True, help="Output directory")

    return parser


# ── Commands ─────────────────────────────────────────────────────────────


def cmd_parse(args, settings) -> int:
    from .core.uniast import Language, load_repository, validate_repository_with_result

    repo = load_repository(args.path, Language.parse(args.language) if args.language else None)
    result = validate_repository_with_result(repo)
    if not result.ok:
        logger.warning(f"Parsed tree has problems: {result.summary()}")
    directory = os.path.dirname(args.output)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as f:
        f.write(repo.to_json(indent=2))
    logger.info(f"Wrote unified AST of {repo.name} to {args.output}")
    return 0


def cmd_translate(args, settings) -> int:
    from .core.model import build_llm
    from .core.pipeline import (
        BackoffAgent,
        DefaultAgent,
        ParseStep,
        Pipeline,
        PipelineState,
        TranslateStep,
        ValidateStep,
        WriteStep,
    )
    from .core.translate import LLMTranslator, TranslateOptions, TranslateResult
    from .core.uniast import Language
    from .core.writer import WriterRegistry

    target_lang = Language.parse(args.target_lang)
    if target_lang == Language.UNKNOWN:
        logger.error(f"Unknown target language: {args.target_lang}")
        return 2
    if args.output and not WriterRegistry.supports(target_lang):
        logger.error(f"No writer for target language {target_lang.value}; run without --output")
        return 2

    tr = settings.translate
    result = TranslateResult()
    options = TranslateOptions(
        llm_translator=LLMTranslator(build_llm(settings)),
        target_module_name=args.module_name,
        parallel=tr.parallel and not args.sequential,
        concurrency=args.concurrency or tr.concurrency,
        max_retry_per_node=tr.max_retry_per_node,
        continue_on_error=args.continue_on_error or tr.continue_on_error,
        result=result,
        type_mappings=dict(tr.type_mappings),
        max_source_tokens=tr.max_source_tokens,
        generate_entry_point=tr.generate_entry_point,
        generate_config=tr.generate_config,
        progress_callback=lambda done, total, kind, node_id: logger.info(
            f"[{done}/{total}] {kind.value} {node_id}"
        ),
    )

    pl = settings.pipeline
    agent = DefaultAgent(max_retry=pl.max_retry, max_attempts=pl.max_attempts)
    if pl.backoff:
        agent = BackoffAgent(delegate=agent)

    steps = [
        ParseStep(),
        TranslateStep(options, persist=args.persist or pl.persist_artifacts),
        ValidateStep(),
    ]
    if args.output:
        steps.append(WriteStep())

    state = PipelineState(
        source_lang=Language.parse(args.source_lang),
        target_lang=target_lang,
        source_code_path=args.path,
        output_path=args.output,
        work_dir=args.work_dir,
    )
    Pipeline(steps, agent=agent, checkpoint=args.checkpoint or pl.checkpoint).run(state)

    logger.info(
        f"Translation done: {len(result.translated_ids)}/{result.total_nodes} nodes translated, "
        f"{result.failed_count} failed"
    )
    for failed in result.failed_nodes:
        logger.warning(f"  failed: {failed.identity.full()}: {failed.error}")
    return 0


def cmd_write(args, settings) -> int:
    from .core.uniast import load_repository_file, validate_repository
    from .core.writer import write_repository

    repo = load_repository_file(args.path)
    validate_repository(repo)
    write_repository(repo, args.output)
    return 0


_COMMANDS = {
    "parse": cmd_parse,
    "translate": cmd_translate,
    "write": cmd_write,
}


def main(argv=None) -> int:
    """Main entry point for astloom."""
    args = build_parser().parse_args(argv)

    from .setting import load_settings
    settings = load_settings(args.config)

    level = "DEBUG" if args.verbose else (args.log_level or settings.logging.level)
    setup_logging(level)
    logger.info(f"astloom {args.command}: {args.path}")

    from .core.pipeline import PipelineAbortedError
    try:
        return _COMMANDS[args.command](args, settings)
    except PipelineAbortedError as e:
        logger.error(f"Pipeline aborted: {e}")
        return 1
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        logger.debug("Traceback", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
