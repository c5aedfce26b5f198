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

"""M-of-N redeem scripts

The Stacks multisig address is the hash160 of a plain Bitcoin
OP_CHECKMULTISIG redeem script, so the scripts are built with
python-bitcoinlib's CScript.
"""

from bitcoin.core import x
from bitcoin.core.script import CScript, OP_CHECKMULTISIG

from stxmultisig.errors import InvalidThreshold


def pubkey_bytes(pubkey):
    """Accept a public key as bytes or a hex string, returning bytes"""
    if isinstance(pubkey, str):
        return x(pubkey)
    return bytes(pubkey)


def build_redeem_script(pubkeys, required):
    """Build an M-of-N OP_CHECKMULTISIG redeem script

    pubkeys is the ordered key list; script order is significant, the same
    keys in another order give a different script and so a different address.
    """
    pubkeys = [pubkey_bytes(k) for k in pubkeys]
    if required < 1 or required > len(pubkeys):
        raise InvalidThreshold(required, len(pubkeys))
    return CScript([required] + pubkeys + [len(pubkeys), OP_CHECKMULTISIG])


__all__ = (
    'pubkey_bytes',
    'build_redeem_script',
)
