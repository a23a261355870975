import asyncio
import logging
from typing import Any, Mapping

from .errors import BadRequest, ConversionFailed, UnsupportedConversion
from .interfaces import ConversionCapability, ConversionRequest, ConversionResult
from .registry import ConverterRegistry

logger = logging.getLogger(__name__)


class ConversionService:
    """Core domain service dispatching conversion requests.

    This service is framework-agnostic. It resolves a (from, to) pair to the
    first matching converter in the registry, invokes it and hands back a
    ConversionResult. It never retries and never falls back to another
    converter once one has been chosen.
    """

    def __init__(self, registry: ConverterRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ConverterRegistry:
        return self._registry

    def list_capabilities(self) -> list[ConversionCapability]:
        return self._registry.list_capabilities()

    def convert(
        self,
        data: bytes | None,
        source: str | None,
        target: str | None,
        options: Mapping[str, Any] | None = None,
    ) -> ConversionResult:
        if not source or not target:
            return ConversionResult.failure(BadRequest("Missing required parameters: from and to formats"))
        if data is None:
            return ConversionResult.failure(BadRequest("No file uploaded"))

        converter = self._registry.find_converter(source, target)
        if converter is None:
            logger.info("No converter available for %s to %s", source, target)
            return ConversionResult.failure(
                UnsupportedConversion(
                    f"No converter available for {source} to {target}",
                    self._registry.list_capabilities(),
                )
            )

        logger.info("Converting %d bytes from %s to %s", len(data), source, target)
        try:
            result = converter.convert(data, dict(options or {}))
        except ConversionFailed as e:
            result = ConversionResult.failure(e)
        except Exception as e:
            # A faulty converter must not take the process down with it
            logger.exception("Converter %s raised unexpectedly", converter.describe().name)
            failed = ConversionFailed(f"{source} to {target} conversion failed: {e}")
            failed.__cause__ = e
            result = ConversionResult.failure(failed)

        if result.ok:
            logger.info("Conversion %s -> %s succeeded (%d bytes)", source, target, len(result.unwrap()))
        else:
            logger.info("Conversion %s -> %s failed: %s", source, target, result.error)
        return result

    def handle(self, request: ConversionRequest) -> ConversionResult:
        return self.convert(request.data, request.source, request.target, request.options)

    async def handle_async(self, request: ConversionRequest) -> ConversionResult:
        """Run `handle` in a worker thread; the external tool blocks."""
        return await asyncio.to_thread(self.handle, request)
