#!/usr/bin/env python3
"""Script de démarrage de l'API nodesearch."""

import os
import uvicorn


def main():
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8086"))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    print("Démarrage de nodesearch")
    print(f"URL: http://{host}:{port}")
    print(f"Mode debug: {debug}")

    uvicorn.run(
        "nodesearch.app:create_app",
        host=host,
        port=port,
        reload=debug,
        log_level="info" if not debug else "debug",
        factory=True
    )


if __name__ == "__main__":
    main()
