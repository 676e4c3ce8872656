from facilityops import create_app

app = create_app()

# gunicorn -w 4 wsgi:app
# Keep RUN_NOTIFICATION_WORKER unset for multi-worker gunicorn and run run_worker.py separately
