from __future__ import annotations

import logging
import os

import uvicorn
from dotenv import load_dotenv


def main() -> None:
    load_dotenv()

    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # Render sets RENDER_EXTERNAL_URL; bind every interface there
    host = "0.0.0.0" if os.environ.get("RENDER_EXTERNAL_URL") else os.environ.get("HOST", "localhost")
    port = int(os.environ.get("PORT", "3000"))

    # Imported after load_dotenv so module-level settings see the .env values
    from cityinfo.main import app

    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
