import logging
import os

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    host = os.environ.get("LAF_HOST", "0.0.0.0")
    port = int(os.environ.get("LAF_PORT", "8000"))

    logging.getLogger("laf").info("Docs available at: http://%s:%d/docs", host, port)

    uvicorn.run(
        "laf.api.server:app",
        host=host,
        port=port,
        reload=True
    )
