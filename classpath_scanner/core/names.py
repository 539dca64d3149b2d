from __future__ import annotations

from .config import DEFAULT_CODE_UNIT_SUFFIX, DEFAULT_NAME_SEPARATOR
from .models import Candidate, Loader, RawEntry

PATH_SEPARATORS = ("/", "\\")


class NameNormalizer:
    """
    Turns raw entry paths into canonical resource names.

    Code units (entries ending with the code unit suffix, any case) get the
    suffix removed and their path separators replaced by the name separator,
    so ``a/b/C.class`` becomes ``a.b.C``. Other resources keep their raw path.
    """

    def __init__(
        self,
        code_unit_suffix: str = DEFAULT_CODE_UNIT_SUFFIX,
        name_separator: str = DEFAULT_NAME_SEPARATOR,
    ) -> None:
        self.code_unit_suffix = code_unit_suffix
        self.name_separator = name_separator
        self._suffix_lower = code_unit_suffix.lower()

    def is_code_unit(self, raw: str) -> bool:
        return raw.lower().endswith(self._suffix_lower)

    def resource_name(self, raw: str, *, is_code_unit: bool) -> str:
        if not is_code_unit:
            return raw

        name = raw[: len(raw) - len(self.code_unit_suffix)]
        for sep in PATH_SEPARATORS:
            name = name.replace(sep, self.name_separator)
        return name

    def normalize(self, entry: RawEntry, loader: Loader) -> Candidate:
        is_code_unit = self.is_code_unit(entry.name)
        return Candidate(
            resource_name=self.resource_name(entry.name, is_code_unit=is_code_unit),
            entry_name=entry.name,
            location=entry.location,
            is_code_unit=is_code_unit,
            loader=loader,
        )
