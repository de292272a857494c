"""Repository-level translation driver.

Walks every internal module and package of the source repository and
translates Types, then Functions, then Vars into one merged target
module. Each kind phase is fanned out to a bounded thread pool (or run
sequentially) and fully drained before the next phase starts, so every
Type of a package is translated, and visible as a dependency hint,
before any Function of that package is sent to the LLM.
"""

import dataclasses
import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional

import backoff

from ..uniast.models import Declaration, Language, Module, NodeKind, Package, Repository
from .node_translator import NodeTranslator
from .options import (
    FailedNodeInfo,
    NodeTranslationError,
    TranslateContext,
    TranslateOptions,
    TranslateResult,
    TranslationCancelledError,
    TranslationError,
)
from .post_processor import PostProcessor
from .structure import StructureAdapter, sanitize_module_name

logger = logging.getLogger(__name__)

_PHASES = (NodeKind.TYPE, NodeKind.FUNC, NodeKind.VAR)


class Transformer(ABC):
    """Rewrites a source repository into a target-language repository."""

    @abstractmethod
    def transform(self, src: Repository) -> Repository:
        """Return the translated repository. ``src`` is not modified."""


class _Progress:
    """Thread-safe counters plus the optional progress callback."""

    def __init__(self, options: TranslateOptions, result: TranslateResult):
        self._callback = options.progress_callback
        self._result = result
        self._lock = threading.Lock()

    def done(self, kind: NodeKind, node_id: str, translated: bool, error: str = "", identity=None) -> None:
        with self._lock:
            self._result.processed_nodes += 1
            if translated:
                self._result.translated_ids.add(node_id)
            else:
                self._result.failed_nodes.append(
                    FailedNodeInfo(identity=identity, kind=kind, error=error)
                )
            processed = self._result.processed_nodes
            total = self._result.total_nodes
        if self._callback is not None:
            self._callback(processed, total, kind, node_id)


class BaseTransformer(Transformer):
    """Default LLM-backed transformer.

    Args:
        options: Translation options; ``llm_translator`` must be set
        node_translator: Override the per-node translator (tests)
        post_processor: Override post-processing; ``None`` builds the default
    """

    def __init__(
        self,
        options: TranslateOptions,
        node_translator: Optional[NodeTranslator] = None,
        post_processor: Optional[PostProcessor] = None,
    ):
        self.options = options
        self.adapter = StructureAdapter(options.source_language, options.target_language)
        self.node_translator = node_translator or NodeTranslator(options)
        self.post_processor = post_processor

    # ── Entry point ──────────────────────────────────────────────────────

    def transform(self, src: Repository) -> Repository:
        opts = self.options
        target_lang = Language.parse(opts.target_language)

        mod_name = opts.target_module_name or self.adapter.convert_module_name(src.name)
        mod_name = sanitize_module_name(mod_name, target_lang)

        target_mod = Module(name=mod_name, dir=".", language=target_lang)
        target_repo = Repository(name=mod_name, path=src.path, modules={mod_name: target_mod})
        tctx = TranslateContext(
            source_repo=src,
            target_repo=target_repo,
            options=opts,
            target_module=target_mod,
        )

        result = opts.result if opts.result is not None else TranslateResult()
        result.total_nodes = sum(
            1 for _, _, d in src.iter_declarations()
            if d.identity.full() not in opts.already_translated_ids
        )
        progress = _Progress(opts, result)

        logger.info(
            f"Translating {src.name} ({opts.source_language.value} -> {target_lang.value}) "
            f"into module {mod_name}: {result.total_nodes} nodes, "
            f"{'parallel x' + str(opts.concurrency) if self._is_parallel() else 'sequential'}"
        )

        for src_mod in sorted(src.internal_modules(), key=lambda m: m.name):
            for pkg_path in sorted(src_mod.packages or {}):
                src_pkg = src_mod.packages[pkg_path]
                if src_pkg is None:
                    continue
                self._translate_package(src_pkg, tctx, progress)

        post = self.post_processor or PostProcessor(
            target_lang,
            module_name=mod_name,
            generate_entry_point=opts.generate_entry_point,
            generate_config=opts.generate_config,
        )
        post.process(target_repo)
        target_repo.build_graph()

        logger.info(
            f"Translation of {src.name} finished: {len(result.translated_ids)} translated, "
            f"{result.failed_count} failed"
        )
        return target_repo

    # ── Package / phase ──────────────────────────────────────────────────

    def _translate_package(self, src_pkg: Package, tctx: TranslateContext, progress: _Progress) -> None:
        target_path = self.adapter.convert_package_path(src_pkg.pkg_path)
        with tctx.lock:
            target_pkg = tctx.target_module.get_or_create_package(target_path)
            target_pkg.is_main = target_pkg.is_main or src_pkg.is_main
            target_pkg.is_test = target_pkg.is_test or src_pkg.is_test
        # Same translated_nodes dict and lock; only the current package differs.
        pkg_ctx = dataclasses.replace(tctx, target_package=target_pkg)

        logger.debug(f"Package {src_pkg.pkg_path} -> {target_path}")
        skip = self.options.already_translated_ids
        for kind in _PHASES:
            decls = [
                d for d in src_pkg.map_for(kind).values()
                if d is not None and d.identity.full() not in skip
            ]
            self._translate_phase(kind, decls, pkg_ctx, progress)

    def _is_parallel(self) -> bool:
        return self.options.parallel and self.options.concurrency > 1

    def _translate_phase(
        self,
        kind: NodeKind,
        decls: List[Declaration],
        tctx: TranslateContext,
        progress: _Progress,
    ) -> None:
        if not decls:
            return
        if not self._is_parallel():
            for decl in decls:
                self._translate_node(decl, tctx, progress)
            return

        first_error: Optional[BaseException] = None
        workers = min(self.options.concurrency, len(decls))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="astloom-translate") as pool:
            futures = [pool.submit(self._translate_node, d, tctx, progress) for d in decls]
            for future in as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    if first_error is None:
                        first_error = e
        if first_error is not None:
            raise first_error

    # ── Node ─────────────────────────────────────────────────────────────

    def _translate_node(self, src: Declaration, tctx: TranslateContext, progress: _Progress) -> None:
        if tctx.is_cancelled():
            raise TranslationCancelledError(f"translation cancelled before {src.identity.full()}")

        node_id = src.identity.full()
        try:
            target = self._translate_with_retry(src, tctx)
        except TranslationCancelledError:
            raise
        except Exception as e:
            err = NodeTranslationError(src.kind, src.identity, e, file=src.file_line.file)
            if not self.options.continue_on_error:
                raise err from e
            logger.warning(f"Skipping node after failure: {err}")
            progress.done(src.kind, node_id, translated=False, error=str(err), identity=src.identity)
            return

        with tctx.lock:
            previous = tctx.target_package.add(target)
            if previous is not None:
                logger.warning(
                    "Target name %s in package %s produced twice, keeping the latest",
                    target.name,
                    tctx.target_package.pkg_path,
                )
            tctx.translated_nodes[src.identity] = target.identity
        progress.done(src.kind, node_id, translated=True)

    def _translate_with_retry(self, src: Declaration, tctx: TranslateContext) -> Declaration:
        tries = max(1, self.options.max_retry_per_node)
        if tries == 1:
            return self.node_translator.translate(src, tctx)

        @backoff.on_exception(
            backoff.expo,
            TranslationError,
            max_tries=tries,
            giveup=lambda _e: tctx.is_cancelled(),
            on_backoff=lambda details: logger.warning(
                f"Retrying {src.identity.full()} ({details['tries']}/{tries}) "
                f"after {details['wait']:.1f}s"
            ),
            max_value=30,
        )
        def _do_translate():
            return self.node_translator.translate(src, tctx)

        return _do_translate()
