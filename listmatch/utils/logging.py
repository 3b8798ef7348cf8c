
import logging, sys
def setup_logging(level_name: str = "INFO"):
    level = getattr(logging, level_name.upper(), logging.INFO)
    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    root = logging.getLogger()
    # aiohttp logs every request at INFO
    logging.getLogger("aiohttp.access").setLevel(max(level, logging.WARNING))
    if getattr(setup_logging, "_configured", False):
        root.setLevel(level)
        return
    h = logging.StreamHandler(sys.stdout)
    h.setFormatter(logging.Formatter(fmt))
    root.handlers[:] = [h]
    root.setLevel(level)
    setup_logging._configured = True
