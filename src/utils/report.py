"""
Ingestion Report Generator.

Generates a markdown report from the per-site results of a run.
"""

from pathlib import Path
from typing import Dict, Any
from datetime import datetime

from loguru import logger


def generate_ingestion_report(
    site_results: Dict[str, Any],
    output_path: Path,
) -> Path:
    """
    Generate a markdown ingestion report.

    Args:
        site_results: Site name -> SiteResult from the orchestrator
        output_path: Path to write the report

    Returns:
        Path to the generated report
    """
    log = logger.bind(component="IngestionReport")

    lines = []
    lines.append("# Ingestion Report")
    lines.append(f"\n**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    lines.append("")

    # --- Site Summary ---
    lines.append("---")
    lines.append("\n## Sites")
    lines.append("")
    lines.append("| Site | Fetched | Emitted | Media OK | Media Failed | Expansion Failures | Orphaned | Duration |")
    lines.append("|------|---------|---------|----------|--------------|--------------------|----------|----------|")

    total_fetched = 0
    total_emitted = 0
    for site, result in site_results.items():
        total_fetched += result.total_fetched
        total_emitted += result.nodes_emitted
        lines.append(
            f"| {site or '(unnamed)'} | {result.total_fetched:,} | {result.nodes_emitted:,} | "
            f"{result.media_resolved} | {result.media_failed} | "
            f"{result.expansion_failures} | {result.orphaned} | {result.duration_s:.2f}s |"
        )
    lines.append(f"| **Total** | **{total_fetched:,}** | **{total_emitted:,}** | | | | | |")
    lines.append("")

    # --- Per-kind breakdown ---
    lines.append("---")
    lines.append("\n## Resource Kinds")
    lines.append("")
    lines.append("| Site | Kind | Fetched | Dropped (no id) |")
    lines.append("|------|------|---------|-----------------|")
    for site, result in site_results.items():
        for kind, fetched in result.fetched.items():
            dropped = result.dropped.get(kind, 0)
            lines.append(f"| {site or '(unnamed)'} | {kind} | {fetched:,} | {dropped} |")
    lines.append("")

    # --- Dangling references ---
    dangling = {
        site: result.unresolved
        for site, result in site_results.items()
        if result.unresolved
    }
    if dangling:
        lines.append("### Unresolved References")
        lines.append("")
        lines.append("| Site | Relation | Count |")
        lines.append("|------|----------|-------|")
        for site, counts in dangling.items():
            for relation, count in sorted(counts.items()):
                lines.append(f"| {site or '(unnamed)'} | {relation} | {count} |")
        lines.append("")
    else:
        lines.append("All references resolved.")
        lines.append("")

    report_text = "\n".join(lines)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(report_text)

    log.info(f"Ingestion report → {output_path}")
    return output_path
