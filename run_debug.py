#!/usr/bin/env python3
"""
Запуск сервера в режиме отладки.
"""

import os
import sys

import uvicorn


def main():
    """Запускает сервер с подробным логированием и автоперезагрузкой"""
    os.environ.setdefault("LOG_LEVEL", "DEBUG")
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "8000"))

    print("🚀 Запуск Speech Biomarkers API в режиме отладки")
    print(f"   http://{host}:{port}/docs")
    print("=" * 60)

    uvicorn.run(
        "app.main:app",
        host=host,
        port=port,
        reload=True,
        log_level="debug",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
