#!/usr/bin/python3.7+
# -*- coding:utf-8 -*-
"""
@date: 2024-03-11
@desc: 时间方面的处理函数
"""
import datetime

__all__ = [
    "MONTH_NAMES",
    "clf_time",
    "duration2str",
    "timedelta2ns",
]

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND

# 不依赖 locale 的 %b
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def timedelta2ns(td: datetime.timedelta) -> int:
    return ((td.days * 86400 + td.seconds) * 1000000 + td.microseconds) * 1000


def _fmt_frac(v: int, prec: int) -> str:
    """
    Format ``v / 10**prec`` with trailing zeros of the fraction dropped.
    """
    integer, frac = divmod(v, 10 ** prec)
    digits = str(frac).rjust(prec, "0").rstrip("0")
    if digits:
        return "%d.%s" % (integer, digits)
    return str(integer)


def duration2str(ns: int) -> str:
    """
    Render a duration in nanoseconds the way Go's ``time.Duration`` does

    :param ns: 纳秒
    :return: "0s" / "850ns" / "12.5µs" / "1.234ms" / "2.5s" / "1m30s" / "1h0m0s"
    """
    ns = int(ns)
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    u = abs(ns)
    if u < SECOND:
        if u < MICROSECOND:
            return "%s%dns" % (sign, u)
        if u < MILLISECOND:
            return "%s%sµs" % (sign, _fmt_frac(u, 3))
        return "%s%sms" % (sign, _fmt_frac(u, 6))

    out = _fmt_frac(u % (60 * SECOND), 9) + "s"
    minutes = u // (60 * SECOND)
    if minutes:
        out = "%dm" % (minutes % 60) + out
        hours = minutes // 60
        if hours:
            out = "%dh" % hours + out
    return sign + out


def clf_time(dt: datetime.datetime) -> str:
    """
    Common Log Format timestamp

    :param dt: naive datetime is taken as local time
    :return: "10/Oct/2000:13:55:36 -0700"
    """
    if dt.tzinfo is None:
        dt = dt.astimezone()
    offset = dt.utcoffset() or datetime.timedelta(0)
    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hh, mm = divmod(abs(minutes), 60)
    return "%02d/%s/%04d:%02d:%02d:%02d %s%02d%02d" % (
        dt.day, MONTH_NAMES[dt.month - 1], dt.year,
        dt.hour, dt.minute, dt.second,
        sign, hh, mm,
    )
