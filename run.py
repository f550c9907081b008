"""Run uvicorn. Usage: python run.py."""
import uvicorn

from photowall.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "photowall.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )
