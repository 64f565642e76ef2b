"""Run the styledna HTTP API locally.

Requirements:
    pip install 'styledna[serve]'
    export OPENAI_API_KEY=sk-...   # optional; demo data is served without it
"""

import logging

import uvicorn

from styledna.web import create_app

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
