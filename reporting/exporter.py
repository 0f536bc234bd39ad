"""
Converts link-check results and network statistics to Pandas DataFrames and CSV bytes for export.
"""
from __future__ import annotations

import io
from typing import Any

import pandas as pd

from models import LinkCheckResult, RedirectChainResult

_LINK_COLUMNS = [
    "URL", "Source", "Status", "Status Text", "OK", "Response (ms)",
    "Attempts", "Retried", "Redirects", "Final URL", "Redirect Loop", "Error",
]


# ── Link results ───────────────────────────────────────────────────────────────

def link_results_to_df(results: list[LinkCheckResult]) -> pd.DataFrame:
    if not results:
        return pd.DataFrame(columns=_LINK_COLUMNS)

    rows = []
    for r in results:
        redirect = r.redirect_info
        rows.append({
            "URL":           r.url,
            "Source":        r.source_url,
            "Status":        str(r.status),
            "Status Text":   r.status_text,
            "OK":            r.is_successful,
            "Response (ms)": round(r.response_time, 0),
            "Attempts":      r.attempts,
            "Retried":       r.retried,
            "Redirects":     redirect.redirect_count if redirect else 0,
            "Final URL":     redirect.final_url if redirect else r.url,
            "Redirect Loop": redirect.has_loop if redirect else False,
            "Error":         r.error or "",
        })

    # Broken links first
    df = pd.DataFrame(rows, columns=_LINK_COLUMNS)
    return df.sort_values(["OK", "URL"]).reset_index(drop=True)


def redirect_chain_to_df(chain_result: RedirectChainResult) -> pd.DataFrame:
    rows = [
        {
            "Hop":         hop,
            "URL":         entry.url,
            "Status":      str(entry.status),
            "Status Text": entry.status_text,
            "Location":    entry.headers.get("location", ""),
            "Error":       entry.error or "",
        }
        for hop, entry in enumerate(chain_result.chain)
    ]
    return pd.DataFrame(rows, columns=["Hop", "URL", "Status", "Status Text", "Location", "Error"])


# ── Network stats ──────────────────────────────────────────────────────────────

def domain_stats_to_df(stats: dict[str, Any]) -> pd.DataFrame:
    """Per-domain table from NetworkStats.get_stats()."""
    domains = stats.get("top_domains") or []
    if not domains:
        return pd.DataFrame()

    df = pd.DataFrame(domains).rename(columns={
        "domain":              "Domain",
        "requests":            "Requests",
        "successful":          "Successful",
        "failed":              "Failed",
        "avg_response_time":   "Avg Response (ms)",
        "total_response_time": "Total Response (ms)",
    })
    df["Avg Response (ms)"] = df["Avg Response (ms)"].round(0)
    return df.sort_values(["Requests", "Domain"], ascending=[False, True]).reset_index(drop=True)


def status_codes_to_df(stats: dict[str, Any]) -> pd.DataFrame:
    codes = stats.get("status_codes") or {}
    if not codes:
        return pd.DataFrame()
    data = [{"Status": str(k), "Count": v} for k, v in codes.items()]
    return pd.DataFrame(data).sort_values("Count", ascending=False).reset_index(drop=True)


# ── CSV export ─────────────────────────────────────────────────────────────────

def to_csv_bytes(df: pd.DataFrame) -> bytes:
    buf = io.StringIO()
    df.to_csv(buf, index=False)
    return buf.getvalue().encode("utf-8")
