from .config import AppConfig, load_config
from .crm.harvest import harvest_auth_bundle
from .models import AuthBundle

__all__ = ["AppConfig", "AuthBundle", "harvest_auth_bundle", "load_config"]
