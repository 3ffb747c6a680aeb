import uvicorn

from . import config


def main():
    uvicorn.run(
        "sftpgo_manager.main:app",
        host=config.LISTEN_HOST,
        port=config.LISTEN_PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
