import uvicorn
from todo_api.core.config import settings

if __name__ == "__main__":
    uvicorn.run("todo_api.main:app", host=settings.HOST, port=settings.PORT)
