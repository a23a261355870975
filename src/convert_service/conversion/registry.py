import logging

from .errors import RegistryFrozenError
from .interfaces import ConversionCapability, Converter

logger = logging.getLogger(__name__)


class ConverterRegistry:
    """Ordered collection of converters.

    Converters are appended during startup and the registry is then frozen;
    after that it is only read, so lookups need no locking. When several
    converters declare the same pair, the one registered first wins.
    """

    def __init__(self) -> None:
        self._converters: list[Converter] = []
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def register(self, converter: Converter) -> None:
        if self._frozen:
            raise RegistryFrozenError("converter registry is frozen; register converters at startup")
        self._converters.append(converter)
        cap = converter.describe()
        logger.info("Registered converter: %s -> %s (%s)", cap.source, cap.target, cap.name)

    def find_converter(self, source: str, target: str) -> Converter | None:
        for converter in self._converters:
            if converter.supports(source, target):
                return converter
        return None

    def is_supported(self, source: str, target: str) -> bool:
        return self.find_converter(source, target) is not None

    def list_capabilities(self) -> list[ConversionCapability]:
        return [converter.describe() for converter in self._converters]

