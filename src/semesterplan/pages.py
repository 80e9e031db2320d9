"""Summary: HTML pages for the semesterplan upload flow.

Importance: Gives planners a browser form without a separate frontend build.
Alternatives: Serve a static index.html or use a template engine.
"""

from __future__ import annotations

from html import escape

from semesterplan.services import (
    STATUS_SUCCESS,
    STATUS_UNAUTHORIZED,
    ImportReport,
)

_STYLE = """
    body { font-family: Arial, sans-serif; background-color: #f4f4f9; padding: 20px; color: #7c898f; }
    .container { max-width: 600px; margin: 0 auto; background: white; padding: 20px;
                 border-radius: 8px; box-shadow: 0 0 10px rgba(0,0,0,0.1); text-align: center; }
    h1 { color: %(color)s; }
    .upload-area { border: 2px dashed #7c898f; border-radius: 4px; padding: 40px 20px; }
    input[type='submit'], .button { background-color: %(color)s; color: white; padding: 10px 20px;
                 border: none; border-radius: 4px; cursor: pointer; font-weight: bold;
                 margin-top: 20px; text-decoration: none; display: inline-block; }
    ul { text-align: left; }
"""


def render_upload_page(action: str = "/semesterplan/import") -> str:
    """Summary: Render the ICS upload form.

    Importance: Entry point for planners importing a semester plan.
    Alternatives: Accept uploads only through the CLI.
    """

    style = _STYLE % {"color": "#4a90e2"}
    return f"""<html>
<head>
  <title>Importiere Semesterplan (.ics)</title>
  <style>{style}</style>
</head>
<body>
  <div class='container'>
    <h1>Importiere hier den Semesterplan</h1>
    <form action='{escape(action)}' method='POST' enctype='multipart/form-data'>
      <div class='upload-area'>
        <input type='file' id='file' name='file' accept='.ics,.ical' required />
      </div>
      <input type='password' name='token' placeholder='API-Token' />
      <input type='submit' value='Hochladen'>
    </form>
    <p>Bitte lade eine gültige .ics oder .ical Datei hoch</p>
  </div>
</body>
</html>"""


def render_result_page(report: ImportReport, status_code: int, back_link: str = "/semesterplan") -> str:
    """Summary: Render the page shown after an import attempt."""

    if report.status == STATUS_SUCCESS:
        title, heading, color = "Import Erfolg", "Erfolgreich hinzugefügt", "#4CAF50"
        message = f"{report.updated} Veranstaltungen wurden aus dem Semesterplan aktualisiert."
    elif report.status == STATUS_UNAUTHORIZED:
        title, heading, color = "Zugriff verweigert", "Nicht autorisiert", "#f44336"
        message = "Sie sind nicht berechtigt, diese Aktion auszuführen."
    else:
        title, color = "Import fehlerhaft", "#4a90e2"
        heading = f"Fehler erkannt - Fehlercode: {status_code}"
        message = "Beim Import des Semesterplans ist ein Fehler aufgetreten."

    style = _STYLE % {"color": color}
    details = ""
    if report.failed_keys:
        items = "".join(f"<li>{escape(key)}</li>" for key in report.failed_keys)
        details += f"<p>Nicht gefundene IDs:</p><ul>{items}</ul>"
    if report.skipped_events:
        details += f"<p>{report.skipped_events} Termine wurden übersprungen.</p>"

    return f"""<html>
<head>
  <title>{title}</title>
  <style>{style}</style>
</head>
<body>
  <div class='container'>
    <h1>{escape(heading)}</h1>
    <p>{escape(message)}</p>
    {details}
    <a href='{escape(back_link)}' class='button'>Zurück zur Startseite</a>
  </div>
</body>
</html>"""
