from datetime import datetime
from pathlib import Path

from fastapi.templating import Jinja2Templates

from carelog.api.core.config import settings

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
email_templates = Jinja2Templates(directory=str(TEMPLATE_DIR))

email_templates.env.globals["current_year"] = datetime.now().year
email_templates.env.globals["APP_URL"] = settings.APP_URL
email_templates.env.globals["APP_NAME"] = settings.APP_NAME.title()
