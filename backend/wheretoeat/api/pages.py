"""
Standalone HTML status page for link-driven endpoints (email clicks land in a browser, not an API client).
"""
from html import escape

from fastapi.responses import HTMLResponse

from wheretoeat.config import settings
from wheretoeat.core.errors import AppError

_ICON_OK = "&#10004;"
_ICON_FAIL = "&#10008;"


def status_page(title: str, message: str, *, success: bool = True, status_code: int = 200) -> HTMLResponse:
    icon, color = (_ICON_OK, "#16a34a") if success else (_ICON_FAIL, "#dc2626")
    home = escape(settings.public_base_url)
    html = f"""<!DOCTYPE html>
<html lang="fr">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width,initial-scale=1.0">
  <title>{escape(title)} - WhereToEat</title>
</head>
<body style="margin:0;padding:0;background-color:#f4f4f5;font-family:Arial,Helvetica,sans-serif;">
  <div style="max-width:480px;margin:64px auto;background:#ffffff;border-radius:8px;padding:40px 32px;text-align:center;">
    <div style="font-size:48px;color:{color};">{icon}</div>
    <h1 style="font-size:22px;color:#18181b;margin:16px 0;">{escape(title)}</h1>
    <p style="color:#71717a;font-size:15px;line-height:1.5;">{escape(message)}</p>
    <a href="{home}" style="display:inline-block;margin-top:24px;padding:12px 24px;background-color:#18181b;color:#ffffff;text-decoration:none;border-radius:6px;">Retour à WhereToEat</a>
  </div>
</body>
</html>"""
    return HTMLResponse(content=html, status_code=status_code)


def error_page(exc: AppError) -> HTMLResponse:
    return status_page("Action impossible", exc.message, success=False, status_code=exc.status_code)
