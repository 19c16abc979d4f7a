from .qt_app import run_qt_app

if __name__ == "__main__":
    run_qt_app()
