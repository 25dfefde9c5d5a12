"""Base HTML layout for server-rendered pages."""

from __future__ import annotations

from .server_helpers import _escape

_STYLE = """
  *, *::before, *::after { box-sizing: border-box; }
  :root {
    --bg: #ffffff; --surface: #f6f8fa; --border: #d0d7de;
    --text: #1f2328; --muted: #656d76; --link: #0969da;
    --ok: #1a7f37; --err: #cf222e;
  }
  html[data-theme="dark"] {
    --bg: #0d1117; --surface: #161b22; --border: #30363d;
    --text: #f0f6fc; --muted: #8b949e; --link: #58a6ff;
    --ok: #3fb950; --err: #f85149;
  }
  @media (prefers-color-scheme: dark) {
    html[data-theme="system"] {
      --bg: #0d1117; --surface: #161b22; --border: #30363d;
      --text: #f0f6fc; --muted: #8b949e; --link: #58a6ff;
      --ok: #3fb950; --err: #f85149;
    }
  }
  body { margin: 0; font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
         font-size: 14px; background: var(--bg); color: var(--text); }
  a { color: var(--link); text-decoration: none; }
  .pt-container { max-width: 1400px; margin: 0 auto; padding: 20px 28px 48px; }
  .pt-header { display: flex; align-items: center; justify-content: space-between; gap: 16px;
               padding-bottom: 16px; margin-bottom: 20px; border-bottom: 1px solid var(--border); }
  .pt-nav { display: flex; flex-wrap: wrap; gap: 10px; }
  .pt-panel { background: var(--surface); border: 1px solid var(--border); border-radius: 8px;
              padding: 16px; margin-bottom: 16px; }
  .pt-row { display: flex; flex-wrap: wrap; gap: 8px; align-items: center; }
  .pt-muted { color: var(--muted); }
  .pt-table { width: 100%; border-collapse: collapse; }
  .pt-table th, .pt-table td { text-align: left; padding: 6px 8px; border-bottom: 1px solid var(--border);
                               vertical-align: top; }
  .pt-btn { display: inline-block; padding: 5px 12px; border: 1px solid var(--border); border-radius: 6px;
            background: var(--bg); color: var(--text); cursor: pointer; font-size: 13px; }
  .pt-btn[aria-disabled="true"] { opacity: 0.4; pointer-events: none; }
  .pt-btn-danger { color: var(--err); }
  .pt-input, .pt-select { padding: 5px 8px; border: 1px solid var(--border); border-radius: 6px;
                          background: var(--bg); color: var(--text); }
  .pt-flash { padding: 10px 12px; border-radius: 6px; margin-bottom: 12px; display: flex; gap: 8px; }
  .pt-flash-success { border: 1px solid var(--ok); color: var(--ok); }
  .pt-flash-error { border: 1px solid var(--err); color: var(--err); }
  .pt-flash-info, .pt-flash-warning { border: 1px solid var(--border); }
  .pt-cards { display: grid; grid-template-columns: repeat(auto-fill, minmax(260px, 1fr)); gap: 12px; }
  .pt-card img { width: 48px; height: 48px; object-fit: contain; }
  .pt-pagination { display: flex; justify-content: space-between; align-items: center; margin-top: 12px; }
"""

NAV_LINKS = (
    ("/admin/cloudflare/dns", "DNS"),
    ("/admin/cloudflare/firewall", "Firewall"),
    ("/admin/cloudflare/zones", "Zones"),
    ("/admin/cloudflare/analytics", "Analytics"),
    ("/admin/sessions", "Sessions"),
    ("/admin/activity", "Activity"),
    ("/admin/users", "Users"),
    ("/admin/applications", "Applications"),
    ("/admin/settings", "Settings"),
)


def _layout(
    *,
    title: str,
    body: str,
    theme: str = "system",
    user_email: str | None = None,
    show_nav: bool = True,
) -> str:
    """Render the base HTML layout wrapper.

    Forms carry the ``__SET_COOKIE__`` placeholder; the caller swaps in the
    CSRF token once the response exists.
    """
    nav = ""
    if show_nav:
        links = "".join(f'<a class="pt-btn" href="{href}">{label}</a>' for href, label in NAV_LINKS)
        nav = f'<nav class="pt-nav">{links}</nav>'
    account = ""
    if user_email:
        account = (
            '<form method="post" action="/logout" class="pt-row">'
            '<input type="hidden" name="csrf" value="__SET_COOKIE__" />'
            f'<span class="pt-muted">{_escape(user_email)}</span>'
            '<button class="pt-btn" type="submit">Log out</button>'
            "</form>"
        )
    return f"""<!doctype html>
<html lang="en" data-theme="{_escape(theme)}">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>{_escape(title)} | Admin Portal</title>
    <style>{_STYLE}</style>
  </head>
  <body>
    <div class="pt-container">
      <header class="pt-header">
        <strong>Admin Portal</strong>
        {nav}
        {account}
      </header>
      <h2>{_escape(title)}</h2>
      {body}
    </div>
  </body>
</html>"""
