import os

from dotenv import load_dotenv


def default_database_url() -> str:
    """SQLite database in the user's data directory (``$XDG_DATA_HOME`` or ``~/.local/share``)."""
    data_dir = os.getenv("XDG_DATA_HOME") or os.path.join(os.path.expanduser("~"), ".local", "share")
    return f"sqlite:///{os.path.join(data_dir, 'uvp.db')}"


class Config:
    def __init__(self, env_file=None):
        """
        Initialize configuration by loading environment variables and setting default attributes.

        Loads environment variables from the provided .env file path when `env_file` is given; otherwise loads from the default environment. After loading, sets the catalog location, player binary, fetch timeout and server settings using environment values with sensible defaults.

        Parameters:
            env_file (str | None): Optional path to a .env file to load environment variables from.

        Raises:
            ValueError: If a numeric setting is not a number or the store URL is not an http(s) URL.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Local catalog database
        self.DATABASE_URL = os.getenv("UVP_DATABASE_URL", default_database_url())
        self.DB_ECHO = os.getenv("UVP_DB_ECHO", "false").lower() == "true"

        # Remote catalog (a uvp server); takes precedence over the local database
        store_url = os.getenv("UVP_STORE_URL", "")
        if store_url and not store_url.lower().startswith(("http://", "https://")):
            raise ValueError(
                f"UVP_STORE_URL must start with http:// or https://, got: {store_url}"
            )
        self.STORE_URL = store_url.rstrip("/") if store_url else ""

        # Player
        self.MPV_BINARY = os.getenv("UVP_MPV_BINARY", "mpv")

        # Feed fetching
        self.FETCH_TIMEOUT = self._get_float("UVP_FETCH_TIMEOUT", "3")
        if self.FETCH_TIMEOUT <= 0:
            raise ValueError(f"UVP_FETCH_TIMEOUT must be positive, got {self.FETCH_TIMEOUT}")

        # Network service
        self.SERVER_HOST = os.getenv("UVP_SERVER_HOST", "localhost")
        self.SERVER_PORT = int(self._get_float("UVP_SERVER_PORT", "3000"))

    @staticmethod
    def _get_float(name: str, default: str) -> float:
        value = os.getenv(name, default)
        try:
            return float(value)
        except ValueError:
            raise ValueError(f"{name} must be a number, got: {value}") from None

