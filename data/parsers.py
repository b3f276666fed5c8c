"""
Parsers for site list sources: spreadsheet-backed JSON records and CSV uploads.
"""

import pandas as pd
import logging
import math
import re
from typing import Dict, List, Any, Union, IO
from pathlib import Path

from models.data_models import Site
from business_logic.error_handler import SourceUnavailableError, CsvSchemaError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


REQUIRED_FIELDS = ['frameId', 'panelName', 'formatName', 'lat', 'lng', 'cost']
OPTIONAL_FIELDS = ['mediaOwner', 'postcode']

CSV_TEMPLATE = (
    "frameId,panelName,formatName,lat,lng,cost\n"
    "123,Site A,48 sheet,51.4545,-2.5879,100\n"
    "124,Site B,6 sheet,51.4550,-2.5890,80\n"
)


def parse_cost(value: Any) -> float:
    """
    Parse a cost value, cleaning currency symbols and thousands separators.

    Anything that does not parse becomes 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        cost = float(value)
    else:
        cleaned = re.sub(r'[£$€,\s]', '', str(value))
        try:
            cost = float(cleaned)
        except ValueError:
            logger.warning(f"Invalid cost value: {value!r}, using 0")
            return 0.0
    if not math.isfinite(cost):
        return 0.0
    return cost


def parse_coordinate(value: Any) -> float:
    """Parse a latitude or longitude. Unparseable values become NaN."""
    try:
        coordinate = float(value)
    except (TypeError, ValueError):
        return float('nan')
    if not math.isfinite(coordinate):
        return float('nan')
    return coordinate


def _text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and math.isnan(value):
        return ''
    text = str(value).strip()
    # Spreadsheet ids often arrive as floats, e.g. 123.0
    if re.fullmatch(r'\d+\.0', text):
        text = text[:-2]
    return text


class SiteListParser:
    """
    Parser for site lists coming from the JSON site endpoint or a CSV upload.

    Both paths map frameId, panelName, formatName, lat, lng and cost onto
    Site records with the same numeric policy: an unparseable cost becomes 0
    and an unparseable coordinate becomes NaN.
    """

    def parse_records(self, payload: Union[List[Dict[str, Any]], Dict[str, Any]]) -> List[Site]:
        """
        Map JSON records from the site endpoint into Site objects.

        Args:
            payload: Decoded JSON, either a list of records or {"error": message}

        Returns:
            List of Site objects

        Raises:
            SourceUnavailableError: If the payload signals an error or is malformed
        """
        if isinstance(payload, dict):
            if 'error' in payload:
                raise SourceUnavailableError(str(payload['error']))
            raise SourceUnavailableError("Unexpected response from site source")

        if not isinstance(payload, list):
            raise SourceUnavailableError("Unexpected response from site source")

        sites = []
        for index, record in enumerate(payload):
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object site record at index {index}")
                continue
            site = self._record_to_site(record)
            if not site.id:
                logger.warning(f"Skipping site record without frameId at index {index}")
                continue
            sites.append(site)

        logger.info(f"Parsed {len(sites)} sites from JSON records")
        return sites

    def parse_csv(self, source: Union[str, Path, IO]) -> List[Site]:
        """
        Parse an uploaded CSV site list.

        Header names are matched case-insensitively in any order; extra
        columns are ignored.

        Args:
            source: File path or file-like object

        Returns:
            List of Site objects

        Raises:
            CsvSchemaError: If required headers are missing
            SourceUnavailableError: If the file cannot be read as CSV
        """
        try:
            df = pd.read_csv(source, dtype=str, keep_default_na=False, skip_blank_lines=True)
        except pd.errors.EmptyDataError:
            raise CsvSchemaError(REQUIRED_FIELDS, [])
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise SourceUnavailableError(f"Could not read CSV file: {str(e)}")

        found = [str(c).strip() for c in df.columns]
        by_lower = {name.lower(): original for name, original in zip(found, df.columns)}

        missing = [f for f in REQUIRED_FIELDS if f.lower() not in by_lower]
        if missing:
            raise CsvSchemaError(missing, found)

        wanted = REQUIRED_FIELDS + [f for f in OPTIONAL_FIELDS if f.lower() in by_lower]
        df = df[[by_lower[f.lower()] for f in wanted]]
        df.columns = wanted

        # Drop rows that are blank in every required column
        blank = pd.Series(True, index=df.index)
        for column in REQUIRED_FIELDS:
            blank &= df[column].str.strip() == ''
        df = df[~blank]

        sites = []
        # Header is line 1
        for index, row in zip(df.index, df.to_dict(orient='records')):
            site = self._record_to_site(row)
            if not site.id:
                logger.warning(f"Skipping CSV line {index + 2}: frameId is empty")
                continue
            sites.append(site)
        logger.info(f"Parsed {len(sites)} sites from CSV")
        return sites

    def _record_to_site(self, record: Dict[str, Any]) -> Site:
        return Site(
            id=_text(record.get('frameId')),
            name=_text(record.get('panelName')),
            format=_text(record.get('formatName')),
            lat=parse_coordinate(record.get('lat')),
            lng=parse_coordinate(record.get('lng')),
            cost=parse_cost(record.get('cost')),
            media_owner=_text(record.get('mediaOwner')),
            postcode=_text(record.get('postcode')),
        )
