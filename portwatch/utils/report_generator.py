"""
PortWatch Report Generator
Human-readable Markdown and self-contained HTML reports built from a DiffFile.

Layout: title + metadata, narrative sections (opened / closed / changed), summary table
(opened -> closed -> changed, each ordered by port) and a footer note.
Executable paths are deliberately left out of reports.
"""
import html
from datetime import datetime
from typing import Iterable, List, Optional, Tuple, Union

from portwatch.core.schemas import DiffFile, SnapshotMetadata, SocketRecord

UNKNOWN_PROGRAM = "unknown program"
UNKNOWN_SCOPE = "with unknown scope"
NO_CHANGES = "(No changes)"
FOOTER_NOTE = "This report lists the changes detected between the previous analysis and the analysis shown in the header."

Row = Tuple[str, str, str, str]


# --- Shared phrasing ---

def translate_scope(local_address: Optional[str]) -> str:
    if not local_address or not local_address.strip():
        return UNKNOWN_SCOPE
    address = local_address.strip()
    if address in ("127.0.0.1", "::1"):
        return "only from this machine"
    if address in ("0.0.0.0", "::"):
        return "on all interfaces"
    return f"on interface {address}"


def normalize_program(process_name: Optional[str]) -> str:
    if not process_name or not process_name.strip():
        return UNKNOWN_PROGRAM
    return process_name.strip()


def human_timestamp(ts: Optional[str]) -> str:
    """'20250114-093000' -> '14/01/2025 09:30:00'; anything unparsable is returned unchanged."""
    if not ts:
        return ""
    try:
        return datetime.strptime(ts, "%Y%m%d-%H%M%S").strftime("%d/%m/%Y %H:%M:%S")
    except ValueError:
        return ts


def opened_line(record: SocketRecord) -> str:
    return (f"Port {record.local_port} was opened, reachable {translate_scope(record.local_address)}, "
            f"by program {normalize_program(record.process_name)}.")


def closed_line(record: SocketRecord) -> str:
    return (f"Port {record.local_port} was closed; it was reachable {translate_scope(record.local_address)}, "
            f"owned by program {normalize_program(record.process_name)}.")


def changed_line(before: SocketRecord, after: SocketRecord) -> str:
    scope = translate_scope(after.local_address)
    program = normalize_program(after.process_name)
    if program == UNKNOWN_PROGRAM:
        return f"Port {after.local_port} changed its owning process and is still reachable {scope}."
    previous = normalize_program(before.process_name)
    return (f"Port {after.local_port} changed its owning process and is still reachable {scope} "
            f"(program: {program}, previously {previous}).")


def summary_rows(diff_file: DiffFile) -> List[Row]:
    diff = diff_file.diff
    rows: List[Row] = []
    for label, records in (("Opened", diff.added), ("Closed", diff.removed)):
        for r in sorted(records, key=lambda s: s.local_port):
            rows.append((label, str(r.local_port), translate_scope(r.local_address), normalize_program(r.process_name)))
    for c in sorted(diff.changed, key=lambda c: c.after.local_port):
        rows.append(("Changed", str(c.after.local_port), translate_scope(c.after.local_address),
                     normalize_program(c.after.process_name)))
    return rows


def _meta_lines(diff_file: DiffFile, previous: Optional[SnapshotMetadata]) -> List[Tuple[str, str]]:
    meta = diff_file.metadata
    lines = [
        ("Machine", meta.machine_id),
        ("Operating system", meta.os),
        ("Analysis date", human_timestamp(meta.timestamp)),
    ]
    if previous is not None:
        lines.append(("Compared with", human_timestamp(previous.timestamp)))
    return lines


# --- Markdown ---

def _escape_table(value: str) -> str:
    return value.replace("|", "\\|")


def _md_section(title: str, lines: Iterable[str]) -> List[str]:
    items = [f"- {line}" for line in lines] or [f"- {NO_CHANGES}"]
    return [f"### {title}", *items, ""]


def generate_markdown(diff_file: DiffFile, previous: Optional[SnapshotMetadata] = None) -> str:
    diff = diff_file.diff
    md: List[str] = ["# PortWatch - Change report", ""]
    md.extend(f"- **{label}:** {value}" for label, value in _meta_lines(diff_file, previous))
    md += ["", "## Detected events", ""]

    md += _md_section("🟢 Opened ports", (opened_line(r) for r in diff.added))
    md += _md_section("🔴 Closed ports", (closed_line(r) for r in diff.removed))
    md += _md_section("🔄 Changed owners", (changed_line(c.before, c.after) for c in diff.changed))

    md += ["---", "", "## Event summary", "", "| Type | Port | Scope | Program |", "|------|------|-------|---------|"]
    rows = summary_rows(diff_file)
    if not rows:
        md.append("| No changes | – | – | – |")
    for kind, port, scope, program in rows:
        md.append(f"| {kind} | {port} | {_escape_table(scope)} | {_escape_table(program)} |")

    md += ["", f"📌 *{FOOTER_NOTE}*", ""]
    return "\n".join(md)


# --- HTML ---

HTML_STYLE = """
  :root { --bg:#0f1115; --panel:#151922; --text:#e7eaf0; --muted:#aab2c0; --line:#2a3140;
          --good:#30d158; --bad:#ff453a; --chg:#64d2ff;
          --mono: ui-monospace, SFMono-Regular, Menlo, Consolas, monospace;
          --sans: system-ui, -apple-system, Segoe UI, Roboto, Arial, sans-serif; }
  body { margin:0; font-family:var(--sans); background:var(--bg); color:var(--text); }
  .wrap { max-width:980px; margin:0 auto; padding:32px 20px; }
  .meta { margin:0; padding-left:18px; color:var(--muted); }
  .meta b { color:var(--text); }
  .card { background:var(--panel); border:1px solid var(--line); border-radius:14px; padding:16px; margin-top:14px; }
  .dot { width:12px; height:12px; border-radius:50%; display:inline-block; margin-right:8px; }
  .dot.good { background:var(--good); } .dot.bad { background:var(--bad); } .dot.chg { background:var(--chg); }
  table { width:100%; border-collapse:collapse; margin-top:12px; }
  th, td { border:1px solid var(--line); padding:10px; font-size:14px; text-align:left; }
  td.mono { font-family:var(--mono); }
  .note { margin-top:14px; color:var(--muted); font-style:italic; }
"""


def _esc(value: Optional[str]) -> str:
    return html.escape(value or "", quote=True)


def _html_section(title: str, dot: str, lines: Iterable[str]) -> str:
    items = [f"<li>{_esc(line)}</li>" for line in lines] or [f"<li>{NO_CHANGES}</li>"]
    return f'<h3><span class="dot {dot}"></span>{title}</h3><ul>{"".join(items)}</ul>'


def generate_html(diff_file: DiffFile, previous: Optional[SnapshotMetadata] = None) -> str:
    diff = diff_file.diff
    meta_items = "".join(f"<li><b>{_esc(label)}:</b> {_esc(value)}</li>" for label, value in _meta_lines(diff_file, previous))

    rows = summary_rows(diff_file)
    if rows:
        body_rows = "".join(
            f'<tr><td>{_esc(kind)}</td><td class="mono">{_esc(port)}</td><td>{_esc(scope)}</td>'
            f'<td class="mono">{_esc(program)}</td></tr>'
            for kind, port, scope, program in rows
        )
    else:
        body_rows = '<tr><td>No changes</td><td class="mono">–</td><td>–</td><td>–</td></tr>'

    return (
        '<!doctype html>\n<html lang="en">\n<head>\n<meta charset="utf-8"/>\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1"/>\n'
        f"<title>PortWatch - Change report</title>\n<style>{HTML_STYLE}</style>\n</head>\n<body>\n"
        '<div class="wrap">\n<h1>PortWatch - Change report</h1>\n'
        f'<ul class="meta">{meta_items}</ul>\n'
        '<div class="card"><h2>Detected events</h2>'
        + _html_section("Opened ports", "good", (opened_line(r) for r in diff.added))
        + _html_section("Closed ports", "bad", (closed_line(r) for r in diff.removed))
        + _html_section("Changed owners", "chg", (changed_line(c.before, c.after) for c in diff.changed))
        + "</div>\n"
        '<div class="card"><h2>Event summary</h2><table>'
        "<thead><tr><th>Type</th><th>Port</th><th>Scope</th><th>Program</th></tr></thead>"
        f"<tbody>{body_rows}</tbody></table>"
        f'<p class="note">{_esc(FOOTER_NOTE)}</p></div>\n'
        "</div>\n</body>\n</html>\n"
    )


def render_report(
    report_format: str, diff_file: DiffFile, previous: Optional[SnapshotMetadata] = None
) -> Union[str, bytes]:
    """Dispatches to the generator for 'md', 'html' or 'pdf'."""
    fmt = report_format.lower()
    if fmt == "md":
        return generate_markdown(diff_file, previous)
    if fmt == "html":
        return generate_html(diff_file, previous)
    if fmt == "pdf":
        from portwatch.utils.pdf_generator import generate_pdf
        return generate_pdf(diff_file, previous)
    raise ValueError(f"Unsupported report format: {report_format}")
