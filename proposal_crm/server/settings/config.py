from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()

class Settings(BaseModel):
    app_name: str = "Proposal CRM - financial engine"
    environment: str = os.getenv("ENVIRONMENT", "dev")
    debug: bool = os.getenv("DEBUG", "0") == "1"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    currency_symbol: str = os.getenv("CURRENCY_SYMBOL", "€")
    # empty -> knowledge/templates.yaml in the project root
    templates_path: str = os.getenv("PROPOSAL_TEMPLATES_PATH", "")

settings = Settings()
