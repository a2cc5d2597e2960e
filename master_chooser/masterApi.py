# --- Purpose -------------------------------------------------------------------
# Thin client helpers for checking a **ROS master** address from Kivy/KivyMD.
#
# WHAT this module does
# - `parse_master_uri(text)`: check that the user's text is an http(s) address.
# - `get_master_uri(url)`: ask the master to identify itself (XML-RPC `getUri`).
# - `verify(text)`: parse + probe, folded into a single `VerificationResult`.
# - `verify_in_background(text, callback)`: run `verify` off the UI thread and
#   hand the result back on the Kivy main thread.
#
# HOW it works
# - `requests` carries the XML-RPC call as a plain HTTP POST; the reply is
#   streamed and read against an overall deadline.
# - `xmlrpc.client` builds the request body and decodes the reply.
# - Every failure is turned into a result value; nothing is raised to the UI.

import os
import time
import xmlrpc.client
from enum import Enum
from threading import Thread
from urllib.parse import urlsplit
from xml.parsers.expat import ExpatError

import requests
from kivy.clock import Clock
from kivy.logger import Logger

## Global definitions
# Address shown the first time the chooser opens (same lookup order as ROS tools).
DEFAULT_MASTER_URI = os.environ.get("ROS_MASTER_URI", "http://localhost:11311/")
# Upper bound (seconds) for one identification query: per socket operation and
# for reading the whole reply.
MASTER_TIMEOUT_SEC = 5
# caller_id argument required by every master API call.
CALLER_ID = "/master_chooser"

ALLOWED_SCHEMES = ("http", "https")
# Status code the master API uses for a successful call.
STATUS_SUCCESS = 1
# A getUri reply is a few hundred bytes; anything this big is not a master.
MAX_REPLY_BYTES = 64 * 1024


class VerificationResult(Enum):
    VALID = "valid"
    INVALID_SYNTAX = "invalid_syntax"
    UNREACHABLE = "unreachable"


class MasterUriError(ValueError):
    """The text cannot be read as a master address."""


class MasterUnreachable(Exception):
    """The master did not answer the identification query."""


def parse_master_uri(text):
    """
    Return the address to contact for `text`, or raise `MasterUriError`.

    Accepts absolute http/https URLs with a host, e.g. "http://10.0.0.5:11311".
    The port may be omitted (the scheme's default port is then used) but, when
    given, must be a number in range. Whitespace inside the address is refused.
    """
    candidate = (text or "").strip()
    if not candidate:
        raise MasterUriError("empty address")
    if any(ch.isspace() for ch in candidate):
        raise MasterUriError(f"whitespace in address: {candidate!r}")
    try:
        parts = urlsplit(candidate)
        # .port raises ValueError for non-numeric or out-of-range ports
        parts.port
    except ValueError as e:
        raise MasterUriError(f"cannot parse {candidate!r}: {e}") from e
    if parts.scheme not in ALLOWED_SCHEMES:
        raise MasterUriError(f"unsupported scheme in {candidate!r}")
    if not parts.hostname:
        raise MasterUriError(f"no host in {candidate!r}")
    return candidate


def _read_before_deadline(response, master_uri, deadline, timeout):
    # One byte per read: a larger read blocks until the whole chunk arrives,
    # which a slow sender can drag out far past the deadline.
    content = bytearray()
    for chunk in response.iter_content(chunk_size=1):
        content += chunk
        if time.monotonic() > deadline:
            raise MasterUnreachable(f"reply from {master_uri} not complete within {timeout}s")
        if len(content) > MAX_REPLY_BYTES:
            raise MasterUnreachable(f"reply from {master_uri} larger than {MAX_REPLY_BYTES} bytes")
    return bytes(content)


def get_master_uri(master_uri, timeout=MASTER_TIMEOUT_SEC):
    """
    Send one `getUri` call to the master at `master_uri` and return the URI it
    reports for itself.

    First usage notes:
    - xmlrpc.client.dumps(params, methodname=...): encodes an XML-RPC request body.
    - requests.post(url, data=..., timeout=..., stream=True): blocking HTTP POST;
      `timeout` applies to each socket operation, and `stream=True` leaves the
      body unread so we can pull it in ourselves.
    - time.monotonic(): a clock that never jumps; the body is read against a
      deadline of `timeout` seconds from the start of the call, so a master
      that trickles its reply cannot hold the probe open.
    - xmlrpc.client.loads(body): decodes a reply, raising `Fault` for faults.

    The master replies with `[code, statusMessage, uri]`. Any transport error,
    HTTP error, late or oversized reply, undecodable reply or non-success code
    raises `MasterUnreachable`.
    """
    body = xmlrpc.client.dumps((CALLER_ID,), methodname="getUri")
    deadline = time.monotonic() + timeout
    try:
        response = requests.post(
            master_uri,
            data=body.encode("utf-8"),
            headers={"Content-Type": "text/xml"},
            timeout=timeout,
            stream=True,
        )
        with response:
            response.raise_for_status()
            content = _read_before_deadline(response, master_uri, deadline, timeout)
        params, _ = xmlrpc.client.loads(content)
        code, status_message, uri = params[0]
    except requests.exceptions.Timeout as e:
        raise MasterUnreachable(f"no reply from {master_uri} within {timeout}s") from e
    except requests.exceptions.RequestException as e:
        raise MasterUnreachable(f"cannot reach {master_uri}: {e}") from e
    except xmlrpc.client.Fault as e:
        raise MasterUnreachable(f"fault from {master_uri}: {e.faultString}") from e
    except (ExpatError, xmlrpc.client.ResponseError, ValueError, TypeError, IndexError) as e:
        raise MasterUnreachable(f"malformed reply from {master_uri}: {e}") from e
    if code != STATUS_SUCCESS:
        raise MasterUnreachable(f"master at {master_uri} refused getUri: {status_message}")
    return uri


def verify(text, probe=get_master_uri, timeout=MASTER_TIMEOUT_SEC):
    """
    Check `text` and classify it as VALID, INVALID_SYNTAX or UNREACHABLE.

    Parameters
    - text (str): whatever the user typed or scanned.
    - probe (callable): `probe(uri, timeout)` issuing the identification query;
      defaults to `get_master_uri`.
    - timeout (float): seconds allowed for the single probe.

    Malformed text never reaches the network. A probe is attempted exactly once.
    """
    try:
        master_uri = parse_master_uri(text)
    except MasterUriError as e:
        Logger.info(f"MasterChooser: invalid master URI ({e})")
        return VerificationResult.INVALID_SYNTAX

    Logger.info(f"MasterChooser: trying to reach master at {master_uri}")
    try:
        reported_uri = probe(master_uri, timeout)
    except MasterUnreachable as e:
        Logger.warning(f"MasterChooser: {e}")
        return VerificationResult.UNREACHABLE
    except Exception:
        Logger.exception(f"MasterChooser: unexpected failure while probing {master_uri}")
        return VerificationResult.UNREACHABLE

    Logger.info(f"MasterChooser: connected, master reports {reported_uri}")
    return VerificationResult.VALID


def verify_in_background(text, callback, schedule=None, probe=get_master_uri, timeout=MASTER_TIMEOUT_SEC):
    """
    Run `verify(text)` on a daemon thread and pass the result to `callback`.

    - callback (callable): receives the `VerificationResult`.
    - schedule (callable|None): posts a `func(dt)` to the UI thread; defaults to
      `Clock.schedule_once`, which is safe for widget/property updates.

    Returns the started `Thread` so callers (and tests) can join it.
    """
    if schedule is None:
        schedule = Clock.schedule_once

    def _worker():
        result = verify(text, probe=probe, timeout=timeout)
        # The lambda drops Clock's `dt` argument and forwards only the result.
        schedule(lambda dt: callback(result))

    verify_thread = Thread(target=_worker, daemon=True)
    verify_thread.start()
    return verify_thread
