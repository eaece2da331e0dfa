# order_index/core/logging.py
import logging
import sys

import structlog

# stdlib 记录进 structlog 渲染前的公共处理链
_PRE_CHAIN = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
]


def _json_formatter() -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        foreign_pre_chain=_PRE_CHAIN,
    )


def setup_logging(level: str = "INFO", json: bool = False) -> None:
    """
    极简统一日志：
    - 根 logger 设级别
    - 单一 stdout handler，避免重复输出
    - json=True 时经 structlog 渲染成 JSON 行
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    # 清已有 handlers，避免重复
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    if json:
        handler.setFormatter(_json_formatter())
    else:
        fmt = "%(asctime)s %(levelname)s %(name)s %(message)s"
        handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)

    # 静音过于啰嗦的第三方
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level.upper() == "DEBUG" else logging.WARNING
    )
