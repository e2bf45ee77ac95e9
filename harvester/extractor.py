"""
Page extraction: turns a fetched document into a flat Record.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

from bs4 import BeautifulSoup

from .models import URL_KEY, Record

logger = logging.getLogger(__name__)

ROW_CLASSES = frozenset({"dt-row", "dt-row no-value"})
MISSING_LABEL = "brak etykiety"
MISSING_VALUE = "brak danych"


class BaseExtractor(ABC):
    """Extraction contract used by the harvester.

    ``extract`` returns None when the document yields nothing usable; it
    never raises for ordinary malformed markup."""

    @abstractmethod
    def extract(self, url: str, body: str) -> Optional[Record]:
        ...


class SpecTableExtractor(BaseExtractor):
    """Reads label/value rows of a technical-data table.

    Every ``div.dt-row`` (or ``div.dt-row.no-value``) contributes one
    attribute: the label from ``div.dt-row__text__content`` and the value
    from ``span.dt-param-value``. Rows without a value are kept with a
    placeholder so the column still shows up in the report."""

    def __init__(self, missing_label: str = MISSING_LABEL, missing_value: str = MISSING_VALUE) -> None:
        self._missing_label = missing_label
        self._missing_value = missing_value

    def extract(self, url: str, body: str) -> Optional[Record]:
        if not body:
            return None
        soup = BeautifulSoup(body, "html.parser")

        features: Dict[str, str] = {URL_KEY: url}
        for row in soup.find_all("div"):
            if " ".join(row.get("class") or []) not in ROW_CLASSES:
                continue
            label_el = row.find("div", class_="dt-row__text__content")
            value_el = row.find("span", class_="dt-param-value")

            label = label_el.get_text(strip=True) if label_el else self._missing_label
            value = value_el.get_text(strip=True) if value_el else ""
            if label == URL_KEY:
                logger.debug("Ignoring %s label on %s", URL_KEY, url)
                continue
            features[label] = value or self._missing_value

        return Record.from_mapping(features)
