# Copyright (C) 2012-2018 The python-bitcoinlib developers
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

import stxmultisig.core.transaction as transaction

from stxmultisig.version import __version__


class MainParams(object):
    NAME = 'mainnet'
    TX_VERSION = transaction.TX_VERSION_MAINNET
    CHAIN_ID = transaction.CHAIN_ID_MAINNET
    ADDRESS_VERSIONS = {'SINGLESIG': 22,
                        'MULTISIG': 20}
    BASE58_PREFIXES = {'PUBKEY_ADDR': 0,
                       'SCRIPT_ADDR': 5}


class TestNetParams(object):
    NAME = 'testnet'
    TX_VERSION = transaction.TX_VERSION_TESTNET
    CHAIN_ID = transaction.CHAIN_ID_TESTNET
    ADDRESS_VERSIONS = {'SINGLESIG': 26,
                        'MULTISIG': 21}
    BASE58_PREFIXES = {'PUBKEY_ADDR': 111,
                       'SCRIPT_ADDR': 196}


NETWORK_NAMES = ('mainnet', 'testnet')

"""Master global setting for what chain params we're using.

Only the default; anything that builds a transaction for a specific network
passes params explicitly. Don't set this directly, use SelectParams().
"""
params = MainParams()


def SelectParams(name):
    """Select the default chain parameters to use

    name is one of 'mainnet' or 'testnet'

    Default chain is 'mainnet'
    """
    global params
    params = get_params(name)


def get_params(name):
    """Return a params instance for a network name"""
    if name == 'mainnet':
        return MainParams()
    elif name == 'testnet':
        return TestNetParams()
    else:
        raise ValueError('Unknown chain %r' % name)


def parse_network_name(s):
    """Find a network name inside a free-form string

    Matching is case-insensitive and by substring, so 'Testnet', 'stacks
    mainnet' and 'MAINNET' are all accepted. Returns None when s is None or
    names no known network.
    """
    if s is None:
        return None
    s = s.lower()
    for name in NETWORK_NAMES:
        if name in s:
            return name
    return None
