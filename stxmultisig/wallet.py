# Copyright (C) 2012-2014 The python-bitcoinlib developers
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

"""Address-related functionality

Includes representing Stacks addresses and deriving multisig addresses from
public keys. A Stacks multisig address is the c32check re-encoding of the
legacy base58 P2SH address of an OP_CHECKMULTISIG redeem script.
"""

from bitcoin.base58 import CBase58Data
from bitcoin.core import b2x

import stxmultisig
import stxmultisig.c32
from stxmultisig.core.script import build_redeem_script, pubkey_bytes
from stxmultisig.errors import AddressMismatch, ScriptDerivationError


class CStacksAddressError(Exception):
    """Raised when an invalid Stacks address is encountered"""


class CStacksAddress(str):
    """A c32check-encoded Stacks address

    Behaves as the address string; version and hash160 are decoded once.
    """

    def __new__(cls, s):
        try:
            version, hash160 = stxmultisig.c32.address_decode(s)
        except stxmultisig.c32.C32Error as err:
            raise CStacksAddressError('Invalid Stacks address %r: %s' % (s, err))

        self = super(CStacksAddress, cls).__new__(cls, s)
        self.version = version
        self.hash160 = hash160
        return self

    @classmethod
    def from_bytes(cls, hash160, version):
        return cls(stxmultisig.c32.address(version, hash160))

    def is_multisig(self):
        return self.version in (stxmultisig.MainParams.ADDRESS_VERSIONS['MULTISIG'],
                                stxmultisig.TestNetParams.ADDRESS_VERSIONS['MULTISIG'])

    def get_params(self):
        """Params of the network this address belongs to, mainnet if unknown"""
        if self.version in stxmultisig.TestNetParams.ADDRESS_VERSIONS.values():
            return stxmultisig.TestNetParams()
        return stxmultisig.MainParams()


class P2SHStacksAddress(CStacksAddress):
    @classmethod
    def from_redeemScript(cls, redeemScript, params=None):
        """Convert a redeemScript to a Stacks multisig address

        Goes through the legacy P2SH address, so the result is exactly
        b58_to_c32(legacy_p2sh_address(redeemScript)).
        """
        return cls(stxmultisig.c32.b58_to_c32(legacy_p2sh_address(redeemScript, params)))


def legacy_p2sh_address(redeemScript, params=None):
    """Base58check P2SH address of a redeem script

    Raises ScriptDerivationError if the address can't be constructed.
    """
    if params is None:
        params = stxmultisig.params
    try:
        scriptPubKey = redeemScript.to_p2sh_scriptPubKey()
        legacy = CBase58Data.from_bytes(bytes(scriptPubKey[2:22]),
                                        params.BASE58_PREFIXES['SCRIPT_ADDR'])
    except ValueError as err:
        raise ScriptDerivationError('Failed to construct BTC address from pubkeys: %s' % err)
    return str(legacy)


def derive_address(redeemScript, params=None):
    return P2SHStacksAddress.from_redeemScript(redeemScript, params)


def make_multisig_address_raw(pubkeys, required, params=None):
    """Legacy base58 P2SH address for pubkeys, in the order given"""
    return legacy_p2sh_address(build_redeem_script(pubkeys, required), params)


def make_multisig_address(pubkeys, required, params=None):
    """Stacks multisig address for pubkeys, in the order given"""
    return derive_address(build_redeem_script(pubkeys, required), params)


def normalize_pubkeys(pubkeys):
    """Lower-case hex strings for a list of hex or bytes public keys"""
    return [b2x(pubkey_bytes(k)) for k in pubkeys]


def match_address(pubkeys, required, address, params=None):
    """Check that pubkeys match address and return them in the matching order

    Exactly two orders are tried: sorted ascending by hex, then the order
    given. The first one that reproduces address is returned as a list of hex
    strings. Raises AddressMismatch with both derived addresses otherwise.

    When params is None the network is taken from the version of address.
    """
    if params is None:
        try:
            params = CStacksAddress(address).get_params()
        except CStacksAddressError:
            params = stxmultisig.params

    candidates = []
    given = normalize_pubkeys(pubkeys)
    for ordered in (sorted(given), given):
        derived = make_multisig_address(ordered, required, params)
        if derived == address:
            return ordered
        candidates.append(str(derived))

    raise AddressMismatch(address, candidates)


__all__ = (
    'CStacksAddressError',
    'CStacksAddress',
    'P2SHStacksAddress',
    'legacy_p2sh_address',
    'derive_address',
    'make_multisig_address_raw',
    'make_multisig_address',
    'normalize_pubkeys',
    'match_address',
)
