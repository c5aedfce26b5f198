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

"""c32check encoding and decoding

Stacks addresses are the letter 'S', one c32 character for the version, and
the Crockford-style base32 encoding of hash160 + 4 checksum bytes. Leading
zero bytes are encoded as one '0' character each, the same way base58 encodes
them as '1'.
"""

import hashlib

import bitcoin.base58

from bitcoin.core import b2x, x

c32_digits = '0123456789ABCDEFGHJKMNPQRSTVWXYZ'

# Legacy base58check version bytes and the Stacks address versions they map to
ADDR_BITCOIN_TO_STACKS = {
    0: 22,    # P2PKH mainnet -> SP
    5: 20,    # P2SH mainnet -> SM
    111: 26,  # P2PKH testnet -> ST
    196: 21,  # P2SH testnet -> SN
}

ADDR_STACKS_TO_BITCOIN = dict((v, k) for k, v in ADDR_BITCOIN_TO_STACKS.items())


class C32Error(ValueError):
    pass


class InvalidC32Error(C32Error):
    """Raised on generic invalid c32 data, such as bad characters.

    Checksum failures raise C32ChecksumError specifically.
    """
    pass


class C32ChecksumError(C32Error):
    """Raised on an invalid c32check checksum"""
    pass


def _checksum(data):
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()[0:4]


def normalize(s):
    """Upper-case s and fold the ambiguous letters O, L and I onto digits"""
    return s.upper().replace('O', '0').replace('L', '1').replace('I', '1')


def encode(b):
    """Encode bytes to a c32-encoded string"""
    n = int.from_bytes(b, 'big')

    res = []
    while n > 0:
        n, r = divmod(n, 32)
        res.append(c32_digits[r])
    res = ''.join(res[::-1])

    pad = 0
    for c in b:
        if c == 0:
            pad += 1
        else:
            break
    return c32_digits[0] * pad + res


def decode(s):
    """Decode a c32-encoded string, returning bytes"""
    if not s:
        return b''

    s = normalize(s)
    n = 0
    for c in s:
        if c not in c32_digits:
            raise InvalidC32Error(
                'Character %r is not a valid c32 character' % c)
        n = n * 32 + c32_digits.index(c)

    res = n.to_bytes((n.bit_length() + 7) // 8, 'big')

    pad = 0
    for c in s:
        if c == c32_digits[0]:
            pad += 1
        else:
            break
    return b'\x00' * pad + res


def check_encode(version, data):
    """c32check-encode data with a version in [0, 32)"""
    if not 0 <= version < 32:
        raise InvalidC32Error('Invalid version %r: must be between 0 and 31' % version)
    return c32_digits[version] + encode(data + _checksum(bytes([version]) + data))


def check_decode(s):
    """Decode a c32check string, returning (version, data)"""
    s = normalize(s)
    if len(s) < 2:
        raise InvalidC32Error('c32check string too short: %r' % s)
    if s[0] not in c32_digits:
        raise InvalidC32Error('Character %r is not a valid c32 character' % s[0])

    version = c32_digits.index(s[0])
    raw = decode(s[1:])
    data, checksum = raw[:-4], raw[-4:]
    if _checksum(bytes([version]) + data) != checksum:
        raise C32ChecksumError(
            'Checksum mismatch: expected %r, calculated %r' %
            (checksum, _checksum(bytes([version]) + data)))
    return version, data


def address(version, hash160):
    """Encode a 20-byte hash160 as a Stacks address"""
    if len(hash160) != 20:
        raise InvalidC32Error('Invalid hash160 length %d' % len(hash160))
    return 'S' + check_encode(version, hash160)


def address_decode(addr):
    """Decode a Stacks address, returning (version, hash160)"""
    if len(addr) <= 5:
        raise InvalidC32Error('Invalid c32 address %r: invalid length' % addr)
    if addr[0] != 'S':
        raise InvalidC32Error('Invalid c32 address %r: must start with "S"' % addr)
    version, data = check_decode(addr[1:])
    if len(data) != 20:
        raise InvalidC32Error('Invalid c32 address %r: hash160 is %d bytes' % (addr, len(data)))
    return version, data


def b58_to_c32(b58, version=None):
    """Re-encode a base58check legacy address as a Stacks address

    Unless version is given, the legacy version byte is mapped through
    ADDR_BITCOIN_TO_STACKS, or kept as-is when it has no mapping.
    """
    data = bitcoin.base58.CBase58Data(b58)
    if version is None:
        version = ADDR_BITCOIN_TO_STACKS.get(data.nVersion, data.nVersion)
    return address(version, data.to_bytes())


def c32_to_b58(addr, version=None):
    """Re-encode a Stacks address as a base58check legacy address"""
    c32_version, hash160 = address_decode(addr)
    if version is None:
        version = ADDR_STACKS_TO_BITCOIN.get(c32_version, c32_version)
    return str(bitcoin.base58.CBase58Data.from_bytes(hash160, version))


def address_from_hex(version, hash160_hex):
    return address(version, x(hash160_hex))


def address_to_hex(addr):
    version, hash160 = address_decode(addr)
    return version, b2x(hash160)


__all__ = (
    'C32Error',
    'InvalidC32Error',
    'C32ChecksumError',
    'ADDR_BITCOIN_TO_STACKS',
    'ADDR_STACKS_TO_BITCOIN',
    'normalize',
    'encode',
    'decode',
    'check_encode',
    'check_decode',
    'address',
    'address_decode',
    'address_from_hex',
    'address_to_hex',
    'b58_to_c32',
    'c32_to_b58',
)
