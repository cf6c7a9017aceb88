# server.py  (repo root)
import os

import uvicorn

from agentdiscoveries.main import app

if __name__ == "__main__":
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host="0.0.0.0", port=port)
