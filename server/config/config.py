import json
import os

from dotenv import load_dotenv

''' Environment configuration for the society organiser server '''

load_dotenv()

MONGODB_USERNAME = os.getenv("MONGODB_USERNAME", "")
MONGODB_PASSWORD = os.getenv("MONGODB_PASSWORD", "")
CLUSTER_NAME = os.getenv("CLUSTER_NAME", "")
APP_NAME = os.getenv("APP_NAME", "society-organiser")
DATABASE_NAME = os.getenv("DATABASE_NAME", "society_organiser")

# A full URI wins over the Atlas credentials above
MONGODB_URI = os.getenv("MONGODB_URI")

SESSION_SECRET_KEY = os.getenv("SESSION_SECRET_KEY")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

OAUTH_CLIENT_ID = os.getenv("OAUTH_CLIENT_ID")
OAUTH_CLIENT_SECRET = os.getenv("OAUTH_CLIENT_SECRET")
OAUTH_METADATA_URL = os.getenv(
    "OAUTH_METADATA_URL",
    "https://accounts.google.com/.well-known/openid-configuration",
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ENFORCE_UNIQUE_ATTENDANCE = os.getenv("ENFORCE_UNIQUE_ATTENDANCE", "true").lower() in ("1", "true", "yes")


def load_role_emails(raw):
    """Parse the ROLE_EMAILS allow-list, a JSON object of role -> list of emails."""
    if not raw:
        return {}
    data = json.loads(raw)
    return {role: [email.strip().lower() for email in emails] for role, emails in data.items()}


ROLE_EMAILS = load_role_emails(os.getenv("ROLE_EMAILS"))
