"""One-call translation entry points.

``translate`` runs load -> transform -> validate -> (optional) write;
``translate_ast`` only transforms an in-memory repository.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Optional, Union

from ..constants import MAX_TRANSLATE_CONCURRENCY
from ..uniast.loader import infer_language, load_repository
from ..uniast.models import Language, Repository
from ..uniast.validate import validate_repository
from ..writer import write_repository
from .options import InvalidOptionsError, TranslateOptions
from .transformer import BaseTransformer

logger = logging.getLogger(__name__)


def validate_options(options: TranslateOptions) -> None:
    """Raise InvalidOptionsError when ``options`` cannot drive a translation."""
    if Language.parse(options.target_language) == Language.UNKNOWN:
        raise InvalidOptionsError("invalid options: target language is required")
    if options.llm_translator is None:
        raise InvalidOptionsError("invalid options: llm_translator callback is required")
    if options.concurrency < 1 or options.concurrency > MAX_TRANSLATE_CONCURRENCY:
        raise InvalidOptionsError(
            f"invalid options: concurrency must be in 1..{MAX_TRANSLATE_CONCURRENCY}, "
            f"got {options.concurrency}"
        )
    if options.max_retry_per_node < 1:
        raise InvalidOptionsError("invalid options: max_retry_per_node must be >= 1")


def _resolve_languages(repo: Repository, options: TranslateOptions) -> TranslateOptions:
    source = Language.parse(options.source_language)
    if source == Language.UNKNOWN:
        source = infer_language(repo)
        logger.info(f"Inferred source language: {source.value or 'unknown'}")
    return dataclasses.replace(
        options,
        source_language=source,
        target_language=Language.parse(options.target_language),
    )


def translate_ast(repo: Repository, options: TranslateOptions) -> Repository:
    """Transform ``repo`` into the target language without writing anything."""
    validate_options(options)
    options = _resolve_languages(repo, options)
    return BaseTransformer(options).transform(repo)


def translate(
    source: Union[str, Path, Repository],
    options: TranslateOptions,
    output_dir: Optional[str] = None,
) -> Repository:
    """Full translation flow.

    Args:
        source: Repository, tree JSON file or source directory
        options: Translation options
        output_dir: When set, the validated target is written there

    Returns:
        The validated target repository.

    Raises:
        InvalidOptionsError, RepositoryLoadError, TranslationError,
        ValidationError
    """
    validate_options(options)

    if isinstance(source, Repository):
        repo = source
    elif isinstance(source, (str, Path)):
        repo = load_repository(str(source), Language.parse(options.source_language))
    else:
        raise TypeError(
            f"unsupported input type: {type(source).__name__}, expected path or Repository"
        )

    target = translate_ast(repo, options)
    # Invalid LLM output is rejected before anything reaches disk.
    validate_repository(target)

    if output_dir:
        write_repository(target, output_dir)
    return target
