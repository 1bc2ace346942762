"""Map the general meter's tariff period code to a ledger bucket."""
from typing import Dict, Mapping, Optional

UNKNOWN_BUCKET = "unknown"

# NTARF carries the index number of the active supplier period.
NTARF_CODES: Dict[str, str] = {
    "01": "blue_offpeak",
    "02": "blue_peak",
    "03": "white_offpeak",
    "04": "white_peak",
    "05": "red_offpeak",
    "06": "red_peak",
    "07": "index_7",
    "08": "index_8",
    "09": "index_9",
    "10": "index_10",
}

# PTEC is the historic-mode period label; only the Tempo labels map to buckets.
PTEC_CODES: Dict[str, str] = {
    "HCJB": "blue_offpeak",
    "HPJB": "blue_peak",
    "HCJW": "white_offpeak",
    "HPJW": "white_peak",
    "HCJR": "red_offpeak",
    "HPJR": "red_peak",
}

TARIFF_TABLES: Dict[str, Dict[str, str]] = {
    "NTARF": NTARF_CODES,
    "PTEC": PTEC_CODES,
}

BUCKET_LABELS: Dict[str, str] = {
    "blue_offpeak": "HC BLEU",
    "blue_peak": "HP BLEU",
    "white_offpeak": "HC BLANC",
    "white_peak": "HP BLANC",
    "red_offpeak": "HC ROUGE",
    "red_peak": "HP ROUGE",
    UNKNOWN_BUCKET: "INCONNU",
}


def resolve_bucket(fields: Mapping[str, str], field: str = "NTARF") -> Optional[str]:
    """Return the bucket for the tariff code in ``field``, or None."""
    table = TARIFF_TABLES.get(field)
    if table is None:
        raise ValueError(f"Unsupported tariff field: {field}")
    code = fields.get(field)
    if code is None:
        return None
    return table.get(code.strip())


def bucket_label(bucket: str) -> str:
    return BUCKET_LABELS.get(bucket, bucket)
