"""Clearance certificate generation.

The default generator renders an HTML certificate with Jinja2 and writes it
under ``certificate_dir``; the returned reference is the file path.
"""

import logging
from pathlib import Path
from typing import Protocol

from jinja2 import Environment, TemplateError, select_autoescape

from clearance.core.exceptions import GenerationFailedError
from clearance.core.workflow.states import Department
from clearance.db.base import utcnow
from clearance.db.models import Subject

logger = logging.getLogger(__name__)


CERTIFICATE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Clearance Certificate - {{ subject.name }}</title>
</head>
<body>
  <h1>Clearance Certificate</h1>
  <p>This is to certify that <strong>{{ subject.name }}</strong>
     (ID: {{ subject.id }}) has been cleared by all departments.</p>
  <table>
    <tr><th>Department</th><th>Status</th></tr>
    {% for department in departments %}
    <tr><td>{{ department.value|title }}</td><td>{{ statuses[department.value]|title }}</td></tr>
    {% endfor %}
  </table>
  <p>Issued: {{ issued_at }}</p>
</body>
</html>
"""


class ArtifactGenerator(Protocol):
    """Produces the clearance certificate for a fully approved subject."""

    def generate(self, subject: Subject) -> str:
        ...


class HtmlCertificateGenerator:
    """Writes an HTML certificate per subject."""

    def __init__(self, output_dir: str):
        self.output_dir = Path(output_dir)
        self._env = Environment(autoescape=select_autoescape(default=True))
        self._template = self._env.from_string(CERTIFICATE_TEMPLATE)

    def generate(self, subject: Subject) -> str:
        """
        Render and store the certificate.

        Returns:
            Path of the written certificate

        Raises:
            GenerationFailedError: If rendering or writing fails
        """
        issued_at = subject.issued_at or utcnow()
        try:
            html = self._template.render(
                subject=subject,
                departments=list(Department),
                statuses=subject.status_by_department or {},
                issued_at=issued_at.strftime("%Y-%m-%d %H:%M UTC"),
            )
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"{_safe_filename(subject.id)}.html"
            path.write_text(html, encoding="utf-8")
        except (OSError, TemplateError) as e:
            raise GenerationFailedError(
                f"Could not generate certificate for {subject.id}", detail=str(e)
            )

        logger.info(f"Certificate for {subject.id} written to {path}")
        return str(path)


def _safe_filename(value: str) -> str:
    return "".join(c if c.isalnum() or c in "-_." else "_" for c in value) or "subject"
