import asyncio
import atexit
import logging
import signal as signals

from telegram.error import Conflict, NetworkError, TimedOut
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, MessageHandler, filters
from telegram.request import HTTPXRequest

from .bootstrap import setup_logging
from .config import TELEGRAM_CONNECTION_POOL_SIZE, BotSettings, ConfigError, load_settings
from .context import BOT_DATA_KEY, BotContext
from .handlers import (
    SHUTDOWN_KEY,
    contact_handler,
    debug_update_logger,
    error_handler,
    handle_callback,
    handle_message,
    menu_command,
    start_command,
)
from .lock import InstanceGuard
from .monitoring import Fatal, ShutdownSignal, install_409_conflict_logger
from .net import telegram_httpx_kwargs
from .store import ContactStore

logger = logging.getLogger(__name__)

MAX_START_ATTEMPTS = 3
START_DELAY_SECONDS = 8


def build_application(settings: BotSettings, ctx: BotContext, shutdown: ShutdownSignal) -> Application:
    request = HTTPXRequest(
        connection_pool_size=TELEGRAM_CONNECTION_POOL_SIZE,
        read_timeout=90,
        write_timeout=20,
        connect_timeout=20,
        pool_timeout=5,
        httpx_kwargs=telegram_httpx_kwargs(),
    )
    # Updates are processed one at a time (no concurrent_updates) so store writes never interleave.
    application = Application.builder().token(settings.bot_token).request(request).build()
    application.bot_data[BOT_DATA_KEY] = ctx
    application.bot_data[SHUTDOWN_KEY] = shutdown

    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("menu", menu_command))
    application.add_handler(MessageHandler(filters.CONTACT, contact_handler))
    # Commands other than /start and /menu fall through here and get the usual guidance.
    application.add_handler(MessageHandler(filters.TEXT | filters.PHOTO | filters.Document.ALL, handle_message))
    application.add_handler(CallbackQueryHandler(handle_callback))
    application.add_handler(MessageHandler(filters.ALL, debug_update_logger), group=1)
    application.add_error_handler(error_handler)
    return application


async def start_application(application: Application, shutdown: ShutdownSignal) -> None:
    await application.initialize()
    await application.start()
    try:
        await application.bot.delete_webhook(drop_pending_updates=True)
    except (TimedOut, NetworkError) as e:
        logger.warning("delete_webhook failed (%s); continuing with polling", e)
    await application.updater.start_polling(drop_pending_updates=False, error_callback=shutdown.report)


async def stop_application(app: Application, *, reason: str) -> None:
    logger.info("Stopping bot. reason=%s", reason)
    try:
        updater = getattr(app, "updater", None)
        if updater is not None and getattr(updater, "running", False):
            await updater.stop()
    except Exception as e:
        logger.warning("Failed stopping updater: %s", e)

    try:
        if getattr(app, "running", False):
            await app.stop()
    except Exception as e:
        logger.warning("Failed stopping app: %s", e)

    try:
        await app.shutdown()
    except Exception as e:
        logger.warning("Failed shutting down app: %s", e)


def _install_signal_handlers(loop: asyncio.AbstractEventLoop, shutdown: ShutdownSignal) -> None:
    for sig in (signals.SIGINT, signals.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.stop)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler; Ctrl+C surfaces as KeyboardInterrupt.
            pass


async def run_bot(settings: BotSettings, ctx: BotContext) -> Fatal | None:
    """Poll until a signal, a 409 conflict or a graceful stop; returns the fatal reason, if any."""
    shutdown = ShutdownSignal()
    loop = asyncio.get_running_loop()
    _install_signal_handlers(loop, shutdown)
    conflict_log_handler = install_409_conflict_logger(shutdown, loop)

    application = None
    try:
        for attempt in range(1, MAX_START_ATTEMPTS + 1):
            application = build_application(settings, ctx, shutdown)
            try:
                await start_application(application, shutdown)
                break
            except Conflict as e:
                shutdown.report(e)
                break
            except (TimedOut, NetworkError) as e:
                await stop_application(application, reason=f"start attempt {attempt} failed")
                application = None
                if attempt >= MAX_START_ATTEMPTS:
                    raise
                logger.warning(
                    "Bot start attempt %s/%s failed (%s). Retrying in %ss...",
                    attempt,
                    MAX_START_ATTEMPTS,
                    type(e).__name__,
                    START_DELAY_SECONDS,
                )
                await asyncio.sleep(START_DELAY_SECONDS)

        if not shutdown.event.is_set():
            logger.info("Intake bot is running (admin_id=%s).", settings.admin_id)

        fatal = await shutdown.wait()
    finally:
        logging.getLogger("telegram.ext.Updater").removeHandler(conflict_log_handler)
        if application is not None:
            await stop_application(application, reason="shutdown")

    if fatal is not None:
        logger.error("Stopped because of %s", type(fatal.reason).__name__)
    return fatal


def main() -> int:
    setup_logging()

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    guard = InstanceGuard(settings.lock_path)
    if not guard.acquire():
        logger.error("Another bot instance is active (lock: %s). Exiting.", settings.lock_path)
        return 0
    atexit.register(guard.release)

    try:
        store = ContactStore(settings.store_path, legacy_path=settings.legacy_store_path)
        store.load()
        ctx = BotContext(store=store, admin_id=settings.admin_id, export_dir=settings.export_dir)

        logger.info("Starting intake bot...")
        try:
            asyncio.run(run_bot(settings, ctx))
        except KeyboardInterrupt:
            logger.info("Interrupted; shutting down.")
        except NetworkError as e:
            logger.error("Could not reach Telegram after %s attempts: %s", MAX_START_ATTEMPTS, e)
    finally:
        guard.release()

    return 0
