"""
Deterministic checks over generated artifact text.

These run on the plaintext ``.datasource`` / ``.pipe`` content only, the same
way the deployment tool will read it.

Datasource checks:
  1. ``SCHEMA >`` section present                         (error)
  2. ``ENGINE`` directive present                         (error)
  3. At least one ```name` TYPE`` column line             (error)
  4. ``VERSION`` present                                  (warning)
  5. MergeTree without ``ENGINE_SORTING_KEY``             (warning)

Pipe checks:
  1. ``NODE`` and ``SQL >`` present                       (error)
  2. Body contains SELECT and FROM                        (error)
  3. ``VERSION`` present                                  (warning)
  4. Every ``{{ ... }}`` token uses a known template type (warning)
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal

from src.pipes.template import TEMPLATE_TYPES, scan_tokens
from src.core.logging import get_logger

logger = get_logger(__name__)

_COLUMN_RE = re.compile(r"`\w+`\s+\w+")
_VERSION_RE = re.compile(r"^VERSION \d+\s*$", re.MULTILINE)


@dataclass
class ArtifactReport:
    kind: Literal["datasource", "pipe"]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def lint_datasource_file(text: str) -> ArtifactReport:
    report = ArtifactReport(kind="datasource")

    if "SCHEMA >" not in text:
        report.errors.append("Missing SCHEMA section.")
    if "ENGINE " not in text:
        report.errors.append("Missing ENGINE specification.")
    if not _COLUMN_RE.search(text):
        report.errors.append("No valid column definitions found.")

    if not _VERSION_RE.search(text):
        report.warnings.append("No version specified - consider adding VERSION.")
    if 'ENGINE "MergeTree"' in text and "ENGINE_SORTING_KEY" not in text:
        report.warnings.append("MergeTree engine without sorting key may impact performance.")

    if report.errors:
        logger.warning("Datasource lint errors: %s", report.errors)
    return report


def lint_pipe_file(text: str) -> ArtifactReport:
    report = ArtifactReport(kind="pipe")

    if "NODE " not in text:
        report.errors.append("Missing NODE specification.")
    if "SQL >" not in text:
        report.errors.append("Missing SQL section.")
    if not re.search(r"\bSELECT\b", text, re.IGNORECASE):
        report.errors.append("No SELECT statement found in SQL.")
    if not re.search(r"\bFROM\b", text, re.IGNORECASE):
        report.errors.append("No FROM clause found in SQL.")

    if not _VERSION_RE.search(text):
        report.warnings.append("No version specified - consider adding VERSION.")

    for token in scan_tokens(text):
        if token.func not in TEMPLATE_TYPES:
            report.warnings.append(f"Parameter {token.text} may have incorrect syntax.")

    if report.errors:
        logger.warning("Pipe lint errors: %s", report.errors)
    return report
