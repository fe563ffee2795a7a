#!/usr/bin/env python3
"""
Download and process WHO/CDC growth reference data into NumPy .npz format.

This script downloads the LMS tables published by WHO (2006 Child Growth
Standards, 2007 Growth Reference) and CDC (2000 Growth Charts), parses the
CSV/TSV files and saves them as one compressed archive,
``src/anthstat/data/growth_references.npz``, which the anthstat package
loads at runtime.

Each archive entry is a structured array with fields
``sex`` (1 male, 2 female), ``measurement`` (age or length/height), ``L``,
``M`` and ``S``, sorted by sex then measurement.

CDC weight-for-age combines the infant table (birth to 36 months) below
24 months with the 2-20 year table from 24 months on.
"""

import argparse
import hashlib
import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from tqdm import tqdm
from urllib3.util.retry import Retry

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

REFERENCE_DTYPE = np.dtype(
    [("sex", "i1"), ("measurement", "f8"), ("L", "f8"), ("M", "f8"), ("S", "f8")]
)

# Column names accepted for the covariate, in order of preference
COVARIATE_COLUMNS = ["agemos", "age", "length", "height"]

CDC_BASE = "https://www.cdc.gov/growthcharts/data/zscore"
WHO2006_BASE = "https://raw.githubusercontent.com/WorldHealthOrganization/anthro/master/data-raw/growthstandards"
WHO2007_BASE = "https://raw.githubusercontent.com/WorldHealthOrganization/anthroplus/master/data-raw/growthstandards"

# Table name -> source URLs; later URLs take precedence from their first row on
DATA_SOURCES: Dict[str, List[Tuple[str, List[str]]]] = {
    "cdc": [
        ("cdc2000_bmi", [f"{CDC_BASE}/bmiagerev.csv"]),
        ("cdc2000_hcfa", [f"{CDC_BASE}/hcageinf.csv"]),
        ("cdc2000_lfa", [f"{CDC_BASE}/lenageinf.csv"]),
        ("cdc2000_hfa", [f"{CDC_BASE}/statage.csv"]),
        ("cdc2000_wfa", [f"{CDC_BASE}/wtageinf.csv", f"{CDC_BASE}/wtage.csv"]),
        ("cdc2000_wfl", [f"{CDC_BASE}/wtleninf.csv"]),
        ("cdc2000_wfh", [f"{CDC_BASE}/wtstat.csv"]),
    ],
    "who2006": [
        ("who2006_bmi", [f"{WHO2006_BASE}/bmianthro.txt"]),
        ("who2006_wfa", [f"{WHO2006_BASE}/weianthro.txt"]),
        ("who2006_lhfa", [f"{WHO2006_BASE}/lenanthro.txt"]),
        ("who2006_hcfa", [f"{WHO2006_BASE}/hcanthro.txt"]),
        ("who2006_acfa", [f"{WHO2006_BASE}/acanthro.txt"]),
        ("who2006_ssfa", [f"{WHO2006_BASE}/ssanthro.txt"]),
        ("who2006_tsfa", [f"{WHO2006_BASE}/tsanthro.txt"]),
        ("who2006_wfl", [f"{WHO2006_BASE}/wflanthro.txt"]),
        ("who2006_wfh", [f"{WHO2006_BASE}/wfhanthro.txt"]),
    ],
    "who2007": [
        ("who2007_bmi", [f"{WHO2007_BASE}/bfawho2007.txt"]),
        ("who2007_hfa", [f"{WHO2007_BASE}/hfawho2007.txt"]),
        ("who2007_wfa", [f"{WHO2007_BASE}/wfawho2007.txt"]),
    ],
}


def download_csv(url: str, timeout: int = 30) -> str:
    """Download CSV content from URL with retries."""
    try:
        # Create retry configuration
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            backoff_factor=2,  # Exponential backoff
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)

        with requests.Session() as session:
            session.mount("https://", adapter)
            session.mount("http://", adapter)
            response = session.get(url, timeout=timeout, verify=True)
            response.raise_for_status()
            return response.text
    except Exception as e:
        logger.error(f"Failed to download {url}: {e}")
        raise


def compute_sha256(content: str) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def parse_reference_table(content: str, name: str) -> pd.DataFrame:
    """
    Parse a published LMS table into sex/measurement/L/M/S columns.

    Handles comma-separated CDC files and tab-separated WHO files. Header
    names are matched case-insensitively; rows whose sex is not numeric
    (such as a header repeated mid-file) are dropped.

    Args:
        content: Raw file content.
        name: Table name, used in error messages.

    Returns:
        DataFrame with columns sex, measurement, L, M, S.

    Raises:
        ValueError: If a required column is missing or no rows remain.
    """
    frame = pd.read_csv(io.StringIO(content.lstrip("\ufeff")), sep=None, engine="python")
    frame.columns = [str(col).strip().lower() for col in frame.columns]

    covariate = next((col for col in COVARIATE_COLUMNS if col in frame.columns), None)
    missing = [col for col in ("sex", "l", "m", "s") if col not in frame.columns]
    if covariate is None:
        missing.append("age/length/height")
    if missing:
        raise ValueError(f"{name}: missing columns {missing}")

    parsed = pd.DataFrame(
        {
            "sex": pd.to_numeric(frame["sex"], errors="coerce"),
            "measurement": pd.to_numeric(frame[covariate], errors="coerce"),
            "L": pd.to_numeric(frame["l"], errors="coerce"),
            "M": pd.to_numeric(frame["m"], errors="coerce"),
            "S": pd.to_numeric(frame["s"], errors="coerce"),
        }
    ).dropna()
    if parsed.empty:
        raise ValueError(f"{name}: no data rows")
    parsed["sex"] = parsed["sex"].astype(int)
    return parsed.reset_index(drop=True)


def combine_sources(frames: List[pd.DataFrame]) -> pd.DataFrame:
    """
    Chain tables that cover consecutive ranges.

    Rows of an earlier table are kept only below the first measurement of
    the following table for the same sex.
    """
    combined = frames[-1]
    for frame in reversed(frames[:-1]):
        cutoff = combined.groupby("sex")["measurement"].min()
        limits = frame["sex"].map(cutoff).fillna(np.inf)
        combined = pd.concat([frame[frame["measurement"] < limits], combined])
    return combined.reset_index(drop=True)


def to_structured(frame: pd.DataFrame) -> np.ndarray:
    """Convert a parsed table into a sorted structured array."""
    ordered = frame.sort_values(["sex", "measurement"], kind="stable")
    arr = np.zeros(len(ordered), dtype=REFERENCE_DTYPE)
    for field in REFERENCE_DTYPE.names:
        arr[field] = ordered[field].to_numpy()
    return arr


def validate_array(arr: np.ndarray, array_name: str) -> None:
    """Validate parsed array for common issues."""
    if arr.size == 0:
        raise ValueError(f"{array_name}: empty array")

    if not np.all(np.isin(arr["sex"], (1, 2))):
        raise ValueError(f"{array_name}: sex codes other than 1 and 2")

    for col in ["measurement", "L", "M", "S"]:
        if not np.all(np.isfinite(arr[col])):
            raise ValueError(f"{array_name}: non-finite {col} values")

    if np.any(arr["measurement"] < 0):
        raise ValueError(f"{array_name}: negative measurement values")
    for col in ["M", "S"]:
        if np.any(arr[col] <= 0):
            raise ValueError(f"{array_name}: non-positive {col} values")

    for sex in (1, 2):
        values = arr["measurement"][arr["sex"] == sex]
        if values.size == 0:
            logger.warning(f"{array_name}: no rows for sex {sex}")
            continue
        if not np.all(values[:-1] < values[1:]):
            raise ValueError(
                f"{array_name}: measurement not strictly increasing for sex {sex}"
            )


def save_npz(data: Dict[str, np.ndarray], output_path: Path) -> None:
    """Save data dictionary as compressed NumPy .npz file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(output_path, **data)
    logger.info(f"Saved {len(data)} arrays to {output_path}")


def default_output_path() -> Path:
    """Location of the archive inside the package source tree."""
    return Path(__file__).parent.parent / "src" / "anthstat" / "data" / "growth_references.npz"


def main(
    strict_mode: bool = False,
    source_filter: Optional[str] = None,
    force: bool = False,
    output_path: Optional[Path] = None,
) -> None:
    """Main function to download and process all data."""
    output_path = output_path or default_output_path()

    all_data: Dict[str, np.ndarray] = {}

    # Keep tables from an earlier run unless forced to start over
    if output_path.exists() and not force:
        with np.load(output_path) as loaded:
            for key in loaded.files:
                all_data[key] = loaded[key]

    # Track failed sources for strict mode
    failed_sources = []

    selected = {
        source_type: tables
        for source_type, tables in DATA_SOURCES.items()
        if not source_filter or source_type == source_filter
    }
    total_tables = sum(len(tables) for tables in selected.values())
    with tqdm(total=total_tables, desc="Fetching sources") as pbar:
        for source_type, tables in selected.items():
            for name, urls in tables:
                pbar.set_postfix({"source": f"{source_type.upper()}: {name}"})
                pbar.update(1)

                try:
                    frames = []
                    for index, url in enumerate(urls):
                        content = download_csv(url)
                        frames.append(parse_reference_table(content, name))
                        all_data[f"metadata_{name}_{index}_url"] = np.array(
                            [url], dtype="U256"
                        )
                        all_data[f"metadata_{name}_{index}_hash"] = np.array(
                            [compute_sha256(content)], dtype="U256"
                        )

                    arr = to_structured(combine_sources(frames))
                    validate_array(arr, name)
                    all_data[name] = arr
                    all_data[f"metadata_{name}_timestamp"] = np.array(
                        [str(np.datetime64("now"))], dtype="U256"
                    )

                except Exception as e:
                    failed_sources.append(f"{source_type}::{name}")
                    logger.error(f"Failed to process {source_type}::{name}: {e}")
                    continue

    # Check for strict mode failures
    if strict_mode and failed_sources:
        raise RuntimeError(
            f"Strict mode failed: Unable to process sources: {', '.join(failed_sources)}"
        )

    # Save combined data
    save_npz(all_data, output_path)

    # Verify saved data
    with np.load(output_path) as loaded:
        tables = [key for key in loaded.files if not key.startswith("metadata_")]
        logger.info(f"Verification: {len(tables)} reference tables saved")
        for key in tables:
            logger.info(f"  {key}: shape {loaded[key].shape}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Download growth reference data from WHO and CDC sources."
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Discard tables from a previous run instead of merging into them",
    )
    parser.add_argument(
        "--source",
        choices=sorted(DATA_SOURCES),
        help="Download only the tables of one growth reference",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Strict mode: exit on any error instead of continuing with warnings",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the archive here instead of src/anthstat/data",
    )
    args = parser.parse_args()

    main(
        strict_mode=args.strict,
        source_filter=args.source,
        force=args.force,
        output_path=args.output,
    )
