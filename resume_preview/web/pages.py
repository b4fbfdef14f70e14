"""Server-rendered HTML pages: loading spinners and the ATS results view."""

from __future__ import annotations

import html
import re

APP_NAME = "CVAC"

FAVICON_SVG = (
    "<svg xmlns='http://www.w3.org/2000/svg' viewBox='0 0 100 100'>"
    "<rect fill='%23374151' rx='12' width='100' height='100'/>"
    "<path d='M42 30 L22 50 L42 70' stroke='white' stroke-width='8' stroke-linecap='round' "
    "stroke-linejoin='round' fill='none'/>"
    "<path d='M58 30 L78 50 L58 70' stroke='white' stroke-width='8' stroke-linecap='round' "
    "stroke-linejoin='round' fill='none'/></svg>"
)
FAVICON_LINK = f'<link rel="icon" type="image/svg+xml" href="data:image/svg+xml,{FAVICON_SVG}">'

_STATUS_CLASSES = {
    "[OK]": "status--ok",
    "[WARN]": "status--warn",
    "[INFO]": "status--info",
    "[ERROR]": "status--error",
    "[SUCCESS]": "status--ok",
}
_SEPARATOR_RE = re.compile(r"={60}")
_PAGE_BREAK_RE = re.compile(r"--- Page (\d+) ---")
_SAFE_REDIRECT_RE = re.compile(r"^/[A-Za-z0-9/_\-.?=&]*$")


def page_title(subtitle: str) -> str:
    return f"{APP_NAME} | {subtitle}"


def loading_page(title: str, message: str, redirect_url: str) -> str:
    """Spinner page that immediately navigates to the slow endpoint."""
    if not _SAFE_REDIRECT_RE.match(redirect_url):
        raise ValueError(f"Invalid redirect URL: {redirect_url!r}")
    safe_title = html.escape(title)
    safe_message = html.escape(message)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{page_title(safe_title)}</title>
    {FAVICON_LINK}
    <style>
        body {{
            font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
            background: #f5f5f5;
            color: #1e3a5f;
            margin: 0;
            height: 100vh;
            display: flex;
            align-items: center;
            justify-content: center;
        }}
        .container {{ text-align: center; }}
        .spinner {{
            width: 60px;
            height: 60px;
            border: 5px solid rgba(30,58,95,0.2);
            border-top-color: #1e3a5f;
            border-radius: 50%;
            animation: spin 1s linear infinite;
            margin: 0 auto 25px;
        }}
        @keyframes spin {{ to {{ transform: rotate(360deg); }} }}
        h1 {{ font-weight: 400; font-size: 24px; margin: 0 0 10px; }}
        p {{ opacity: 0.7; margin: 0; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="spinner"></div>
        <h1>{safe_title}</h1>
        <p>{safe_message}</p>
    </div>
    <script>
        setTimeout(() => {{ window.location.href = '{redirect_url}'; }}, 100);
    </script>
</body>
</html>"""


def highlight_report(output: str) -> str:
    """Escape the report and wrap status tags, separators and page markers in spans."""
    formatted = html.escape(output, quote=False)
    for tag, css_class in _STATUS_CLASSES.items():
        formatted = formatted.replace(tag, f'<span class="status {css_class}">{tag}</span>')
    formatted = _SEPARATOR_RE.sub('<span class="separator">' + "─" * 60 + "</span>", formatted)
    formatted = _PAGE_BREAK_RE.sub(r'<span class="page-break">── Page \1 ──</span>', formatted)
    return formatted


def ats_results_page(document_name: str, output: str) -> str:
    safe_name = html.escape(document_name)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{page_title(f"ATS Results - {safe_name}")}</title>
    {FAVICON_LINK}
    <style>
        * {{ box-sizing: border-box; }}
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            background: #f5f5f5;
            color: #374151;
            margin: 0;
            min-height: 100vh;
        }}
        .container {{ max-width: 900px; margin: 0 auto; padding: 32px 24px; }}
        .header {{
            display: flex;
            align-items: center;
            justify-content: space-between;
            margin-bottom: 24px;
            padding-bottom: 16px;
            border-bottom: 1px solid #e5e7eb;
        }}
        h1 {{ color: #1e3a5f; font-size: 20px; font-weight: 600; margin: 0; }}
        .results-box {{
            background: #fff;
            padding: 24px;
            border-radius: 8px;
            border: 1px solid #e5e7eb;
        }}
        pre {{
            margin: 0;
            line-height: 1.7;
            font-size: 13px;
            font-family: 'SF Mono', 'Consolas', 'Monaco', monospace;
            white-space: pre-wrap;
            word-wrap: break-word;
            color: #4b5563;
        }}
        .status {{ font-weight: 600; padding: 1px 6px; border-radius: 3px; font-size: 12px; }}
        .status--ok {{ color: #166534; background: #f0fdf4; }}
        .status--warn {{ color: #92400e; background: #fffbeb; }}
        .status--info {{ color: #0369a1; background: #f0f9ff; }}
        .status--error {{ color: #991b1b; background: #fef2f2; }}
        .separator {{ color: #9ca3af; display: block; margin: 12px 0; }}
        .page-break {{
            display: block;
            text-align: center;
            color: #6b7280;
            background: #f9fafb;
            padding: 8px;
            margin: 16px 0;
            border-radius: 4px;
            border: 1px solid #e5e7eb;
        }}
        .back-btn {{
            padding: 10px 16px;
            background: #fff;
            color: #374151;
            border-radius: 6px;
            border: 1px solid #d1d5db;
            cursor: pointer;
        }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>ATS Test: {safe_name}</h1>
            <button onclick="window.close()" class="back-btn">Close</button>
        </div>
        <div class="results-box">
            <pre>{highlight_report(output)}</pre>
        </div>
    </div>
</body>
</html>"""
