import os
import logging
import azure.functions as func

from src.function_blueprints.http_manage import bp as manage_bp
from src.function_blueprints.http_poster_files import bp as poster_files_bp
from src.function_blueprints.http_poster_metadata import bp as poster_metadata_bp
from src.function_blueprints.http_poster_pages import bp as poster_pages_bp


def _configure_logging() -> None:
    lvl = (os.getenv("AZURE_SDK_LOG_LEVEL") or "").upper()
    if lvl:
        level = getattr(logging, lvl, logging.INFO)
        logging.getLogger("azure").setLevel(level)
        logging.getLogger("azure.cosmos").setLevel(level)
        logging.getLogger("azure.storage.blob").setLevel(level)
    app_lvl = (os.getenv("POSTERHUB_LOG_LEVEL") or "INFO").upper()
    logging.getLogger("posterhub").setLevel(getattr(logging, app_lvl, logging.INFO))


_configure_logging()

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)
app.register_functions(poster_files_bp)
app.register_functions(poster_metadata_bp)
app.register_functions(poster_pages_bp)
app.register_functions(manage_bp)
