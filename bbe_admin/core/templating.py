from pathlib import Path

from fastapi.templating import Jinja2Templates

from bbe_admin.core.colors import rgb_to_hex
from bbe_admin.core.config import settings

templates = Jinja2Templates(
    directory=str(Path(__file__).resolve().parent.parent / "templates")
)
templates.env.filters["rgb_to_hex"] = rgb_to_hex
templates.env.globals["project_name"] = settings.PROJECT_NAME
templates.env.globals["version"] = settings.VERSION
