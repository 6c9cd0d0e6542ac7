from src.timeclock_sync.timeclock_sync.main import create_app

app = create_app()


if __name__ == "__main__":
    # The reloader would start a second scheduler and device reaper.
    app.run(host="0.0.0.0", port=5000, debug=app.config["DEBUG"], use_reloader=False)
