# Copyright (C) 2024 The python-stxmultisiglib developers
#
# This file is part of python-stxmultisiglib.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of python-stxmultisiglib, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

"""Per-address nonce cache

Building several transactions from one sender without waiting for
confirmations would otherwise ask the node for the same nonce each time.
"""

import logging
import threading

log = logging.getLogger(__name__)


class NonceCache(object):
    """Hands out strictly increasing nonces per address

    The first request for an address asks the node; later requests return the
    last nonce handed out plus one. Requests for the same address are
    serialized, requests for different addresses are not.
    """

    def __init__(self, node):
        self.node = node
        self.nonces = {}
        self._locks = {}
        self._locks_lock = threading.Lock()

    def _lock_for(self, address):
        with self._locks_lock:
            lock = self._locks.get(address)
            if lock is None:
                lock = self._locks[address] = threading.Lock()
            return lock

    def get_nonce(self, address):
        address = str(address)
        while True:
            lock = self._lock_for(address)
            with lock:
                # clear() may have dropped this lock while we waited for it
                if self._locks.get(address) is not lock:
                    continue
                cached = self.nonces.get(address)
                if cached is None:
                    nonce = int(self.node.get_nonce(address))
                    log.debug('Fetched nonce %d for %s from node', nonce, address)
                else:
                    nonce = cached + 1
                self.nonces[address] = nonce
                return nonce

    def clear(self):
        """Forget every address; the next request for each asks the node again"""
        with self._locks_lock:
            for lock in self._locks.values():
                lock.acquire()
            try:
                self.nonces.clear()
            finally:
                for lock in self._locks.values():
                    lock.release()
            self._locks.clear()

    def __contains__(self, address):
        return str(address) in self.nonces


__all__ = (
    'NonceCache',
)
