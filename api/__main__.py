import logging
import uvicorn
from runtime.settings import Settings

def main():
    """Serve the API with uvicorn using MESHSIM_* settings."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    uvicorn.run("api.app:app", host=settings.host, port=settings.port)

if __name__ == "__main__":
    main()
