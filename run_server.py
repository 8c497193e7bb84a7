import uvicorn

from stitcher.core import config

if __name__ == "__main__":
    uvicorn.run("stitcher.main:app", host="0.0.0.0", port=config.PORT)
