"""
Periodic storage sync
"""
import logging
from englib.core.storage import get_storage
from englib.modules.sync.service import SyncInProgressError, run_sync

logger = logging.getLogger(__name__)

def scheduled_sync(app):
    """Run an incremental sync inside the app context"""
    with app.app_context():
        try:
            run_sync(
                get_storage(app.config),
                'incremental',
                app.config['STORAGE_ROOT_PATH'],
                app.config['SYNC_ALLOWED_EXTENSIONS']
            )
        except SyncInProgressError:
            logger.info("Skipping scheduled sync, another sync is running")

def setup_sync_scheduler(app):
    """Setup scheduled incremental syncs using APScheduler"""
    if not app.config.get('SYNC_SCHEDULE_ENABLED', True):
        return None

    from apscheduler.schedulers.background import BackgroundScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    minutes = app.config.get('SYNC_SCHEDULE_MINUTES', 30)

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        func=scheduled_sync,
        args=[app],
        trigger=IntervalTrigger(minutes=minutes),
        id='storage_sync',
        name='Incremental Storage Sync',
        max_instances=1,
        coalesce=True,
        replace_existing=True
    )
    scheduler.start()
    logger.info(f"Sync scheduler started: every {minutes} minutes")
    return scheduler
