from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.utils.formatting import format_inr

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"])
)
env.filters["inr"] = lambda amount: format_inr(amount, decimals=False)
env.globals["current_year"] = lambda: datetime.utcnow().year

def render_template(template_path: str, **context) -> str:
    template = env.get_template(template_path)
    return template.render(**context)
