import uvicorn

from learnhub.config import HOST, PORT


if __name__ == "__main__":
    uvicorn.run("learnhub.app:app", host=HOST, port=PORT)
