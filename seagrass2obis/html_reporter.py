"""
HTML run report for seagrass2obis

Every pipeline stage appends to one HTMLReporter; the file is written once at
the end of the run (also when the run fails) so the survey team can see which
rows were dropped, padded or left without coordinates.
"""
import datetime
import html
import webbrowser
from pathlib import Path

STATUS_COLORS = {
    "SUCCESS": "#2e7d32",
    "WARNING": "#f9a825",
    "FAILED": "#c62828",
    "RUNNING": "#607d8b",
}

_STYLE = """
        body { font-family: Helvetica, Arial, sans-serif; margin: 24px; background: #eef3f0; color: #263238; }
        main { max-width: 1200px; margin: 0 auto; background: #fff; padding: 32px 40px; border-radius: 10px; border: 1px solid #d7e0dc; }
        .status { padding: 16px; border-radius: 6px; text-align: center; font-size: 22px; font-weight: bold; color: #fff; }
        .run-info { display: grid; grid-template-columns: max-content auto; gap: 4px 16px; background: #f5f8f6; padding: 14px 18px; border-radius: 6px; margin: 18px 0; }
        .run-info dt { font-weight: bold; }
        .run-info dd { margin: 0; }
        .note { padding: 12px 14px; margin: 8px 0; border-left: 5px solid; border-radius: 3px; }
        .note-success { background: #e8f5e9; border-color: #2e7d32; }
        .note-warning { background: #fff8e1; border-color: #f9a825; }
        .note-error { background: #ffebee; border-color: #c62828; }
        .frame { overflow-x: auto; border: 1px solid #d7e0dc; border-radius: 4px; margin: 8px 0 16px 0; }
        .frame table { border-collapse: collapse; width: 100%; font-size: 13px; }
        .frame th, .frame td { padding: 6px 10px; border: 1px solid #d7e0dc; text-align: left; white-space: nowrap; }
        .frame th { background: #dfe9e4; }
        .frame tr:nth-child(even) td { background: #f5f8f6; }
        pre { background: #f5f8f6; padding: 10px; overflow-x: auto; }
"""


class HTMLReporter:
    def __init__(self, filename="seagrass2obis_report.html"):
        self.filename = filename
        self.blocks = []
        self.status = "RUNNING"
        self.start_time = datetime.datetime.now()
        self.error_message = None
        self.warnings = []

    def add_section(self, title, level=2):
        """Add a section header"""
        self.blocks.append(f"<h{level}>{title}</h{level}>")

    def add_text(self, text):
        self.blocks.append(f"<p>{text}</p>")

    def add_code(self, text):
        """Add preformatted text (tracebacks, raw values); escaped."""
        self.blocks.append(f"<pre>{html.escape(text)}</pre>")

    def add_list(self, items, title=None):
        heading = f"<h4>{title}</h4>" if title else ""
        entries = "".join(f"<li>{item}</li>" for item in items)
        self.blocks.append(f"{heading}<ul>{entries}</ul>")

    def add_dataframe(self, df, title=None, max_rows=10):
        """Add a preview of a DataFrame; cell values are escaped, nulls shown blank."""
        parts = [f"<h4>{title}</h4>"] if title else []
        parts.append(f"<p><strong>Shape:</strong> {df.shape[0]:,} rows x {df.shape[1]} columns</p>")
        if len(df) > max_rows:
            parts.append(f"<p><em>Showing first {max_rows} of {len(df):,} rows</em></p>")
        table = df.head(max_rows).to_html(escape=True, na_rep='', index=False, border=0)
        parts.append(f'<div class="frame">{table}</div>')
        self.blocks.append("".join(parts))

    def _add_note(self, kind, message, label=None):
        prefix = f"<strong>{label}:</strong> " if label else ""
        self.blocks.append(f'<div class="note note-{kind}">{prefix}{message}</div>')

    def add_success(self, message):
        self._add_note("success", message)

    def add_warning(self, message):
        """Add a warning and remember it for the final status"""
        self.warnings.append(message)
        self._add_note("warning", message, "WARNING")

    def add_error(self, message):
        """Add an error; the report status becomes FAILED"""
        self.error_message = message
        self.status = "FAILED"
        self._add_note("error", message, "ERROR")

    def set_success(self):
        if self.status != "FAILED":
            self.status = "SUCCESS"

    def set_warning(self):
        if self.status != "FAILED":
            self.status = "WARNING"

    def set_failed(self, error_message=None):
        self.status = "FAILED"
        if error_message:
            self.error_message = error_message

    def save(self):
        self._write_html()

    def save_and_open(self):
        self._write_html()
        self._open_in_browser()

    def _run_info(self, end_time):
        rows = [
            ("Started", self.start_time.strftime('%Y-%m-%d %H:%M:%S')),
            ("Finished", end_time.strftime('%Y-%m-%d %H:%M:%S')),
            ("Duration", str(end_time - self.start_time).split('.')[0]),
            ("Warnings", str(len(self.warnings))),
            ("Report file", html.escape(str(self.filename))),
        ]
        if self.status == "FAILED" and self.error_message:
            rows.append(("Failure", html.escape(str(self.error_message))))
        return "".join(f"<dt>{name}</dt><dd>{value}</dd>" for name, value in rows)

    def _write_html(self):
        end_time = datetime.datetime.now()
        color = STATUS_COLORS.get(self.status, STATUS_COLORS["RUNNING"])
        body = "\n".join(self.blocks)

        document = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>seagrass2obis Report</title>
    <style>{_STYLE}    </style>
</head>
<body>
<main>
    <div class="status" style="background-color: {color};">{self.status}</div>
    <dl class="run-info">{self._run_info(end_time)}</dl>
    <h1>seagrass2obis Processing Report</h1>
{body}
</main>
</body>
</html>
"""
        with open(self.filename, 'w', encoding='utf-8') as f:
            f.write(document)

    def _open_in_browser(self):
        try:
            webbrowser.open(Path(self.filename).resolve().as_uri())
        except Exception as e:
            print(f"Could not open browser automatically: {e}")
            print(f"Please open {self.filename} manually in your browser")
