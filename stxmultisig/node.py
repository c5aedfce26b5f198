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

"""Interface to a Stacks network node

This library does not talk to the network itself; callers pass in an object
implementing StacksNode (an RPC client, or an in-memory double in tests).
"""


class StacksNode(object):
    """Network node collaborator

    Timeouts and retries are the implementation's business; errors raised
    here propagate to the caller unchanged.
    """

    def get_nonce(self, address):
        """Return the next nonce for address as an int"""
        raise NotImplementedError

    def broadcast(self, tx):
        """Broadcast a fully signed CStacksTransaction, returning a receipt"""
        raise NotImplementedError


__all__ = (
    'StacksNode',
)
