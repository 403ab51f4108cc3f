"""
Console, JSON and Markdown rendering of audit results.
"""
from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from src.github import Repo

from .aggregate import ContributionCounts, Output, count_contributions, per_repository
from .contribution import Contribution

ROW_FORMAT = "{0: <40} {1: <10} {2: <10} {3: <10} {4: <10}"


def select_outputs(outputs: Sequence[Output], include_members: bool = False) -> List[Output]:
    """Drop company members unless requested, largest contributors first."""
    selected = [o for o in outputs if include_members or not o.membership]
    selected.sort(key=lambda o: len(o.contributions), reverse=True)
    return selected


def repository_rows(outputs: Sequence[Output]) -> List[Tuple[Repo, ContributionCounts]]:
    rows = [(repo, count_contributions(cs)) for repo, cs in per_repository(outputs).items()]
    rows.sort(key=lambda r: (-r[1].total, r[0].full_name))
    return rows


def _row(label: str, counts: ContributionCounts) -> str:
    return ROW_FORMAT.format(label, counts.issues, counts.reviews, counts.commits, counts.total)


def render_tables(outputs: Sequence[Output]) -> str:
    """Per-author table, separator, per-repository table."""
    lines = [ROW_FORMAT.format("handle", "issues", "reviews", "commits", "all")]
    for output in outputs:
        lines.append(_row(output.login or "None", count_contributions(output.contributions)))
    lines.append(f"Total Contributions: {sum(len(o.contributions) for o in outputs)}")

    lines.append("--")

    repo_rows = repository_rows(outputs)
    lines.append(ROW_FORMAT.format("repo", "issues", "reviews", "commits", "all"))
    for repo, counts in repo_rows:
        lines.append(_row(repo.full_name, counts))
    lines.append(f"Total Contributions: {sum(c.total for _, c in repo_rows)}")
    return "\n".join(lines) + "\n"


def _contribution_dict(contribution: Contribution) -> Dict[str, Any]:
    created = contribution.created_at()
    payload = contribution.payload
    ref = getattr(payload, "number", None) or getattr(payload, "sha", None) or getattr(payload, "id", None)
    return {
        "repository": contribution.repo.full_name,
        "kind": contribution.kind.value,
        "ref": ref,
        "created_at": created.isoformat() if created else None,
    }


def outputs_to_dict(outputs: Sequence[Output], since=None, until=None) -> Dict[str, Any]:
    authors = []
    for o in outputs:
        counts = count_contributions(o.contributions)
        authors.append({
            "login": o.login,
            "id": o.author.id if o.author else None,
            "company": o.author.company if o.author else None,
            "email": o.author.email if o.author else None,
            "membership": o.membership,
            "issues": counts.issues,
            "reviews": counts.reviews,
            "commits": counts.commits,
            "total": counts.total,
            "contributions": [_contribution_dict(c) for c in o.contributions],
        })
    repositories = [
        {
            "repository": repo.full_name,
            "issues": counts.issues,
            "reviews": counts.reviews,
            "commits": counts.commits,
            "total": counts.total,
        }
        for repo, counts in repository_rows(outputs)
    ]
    return {
        "generated_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "since": since.isoformat() if since else None,
        "until": until.isoformat() if until else None,
        "authors": authors,
        "repositories": repositories,
    }


def write_reports(outputs: Sequence[Output], output_dir: Path, since=None, until=None) -> Tuple[Path, Path]:
    """Save ``contributions.json`` and ``contributions.md`` into ``output_dir``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / "contributions.json"
    md_path = output_dir / "contributions.md"
    data = outputs_to_dict(outputs, since=since, until=until)

    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    with open(md_path, "w", encoding="utf-8") as f:
        f.write("# Contributions Report\n\n")
        f.write(f"Generated: {datetime.datetime.now(datetime.timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')}\n\n")
        if since or until:
            f.write(f"Window: {data['since'] or '-'} to {data['until'] or '-'}\n\n")
        if not data["authors"]:
            f.write("No contributions found.\n")
            return json_path, md_path
        f.write("## Contributors\n\n")
        f.write("| Login | Company | Email | Member | Issues | Reviews | Commits | All |\n")
        f.write("|-------|---------|-------|--------|-------:|--------:|--------:|----:|\n")
        for a in data["authors"]:
            f.write(
                f"| {a['login'] or 'None'} | {a['company'] or ''} | {a['email'] or ''} | "
                f"{'yes' if a['membership'] else 'no'} | {a['issues']} | {a['reviews']} | "
                f"{a['commits']} | {a['total']} |\n"
            )
        f.write("\n## Repositories\n\n")
        f.write("| Repository | Issues | Reviews | Commits | All |\n")
        f.write("|------------|-------:|--------:|--------:|----:|\n")
        for r in data["repositories"]:
            f.write(f"| {r['repository']} | {r['issues']} | {r['reviews']} | {r['commits']} | {r['total']} |\n")
    return json_path, md_path
