"""
Domain layer for file conversion.
Provides the converter contract, the ordered converter registry and a
service that dispatches requests to converters, so front-ends (HTTP or
others) can use the same core logic.
"""

from .errors import (
    BadRequest,
    ConversionError,
    ConversionFailed,
    DependencyUnavailable,
    IOFailure,
    ProcessingFailed,
    RegistryFrozenError,
    UnsupportedConversion,
)
from .interfaces import ConversionCapability, ConversionRequest, ConversionResult, Converter, normalize_format
from .registry import ConverterRegistry
from .service import ConversionService
from .adapters import EpsToSvgConverter, ExternalToolConverter, build_default_registry
