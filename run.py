import uvicorn
from atelier.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "atelier.main:app",
        host="localhost",
        port=settings.SERVER_PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )
