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

"""Stacks token-transfer transactions and their wire format

Only what a multisig STX transfer needs is modelled: standard and sponsored
auth, single-sig and multisig spending conditions, an empty post-condition
list and the token-transfer payload. All integers are big-endian and lists
are prefixed with a u32 length.

Equality of the classes below is equality of their serialization.
"""

import base64
import struct

from bitcoin.core import b2x
from bitcoin.core.serialize import Serializable, SerializationError, ser_read

import stxmultisig.c32

TX_VERSION_MAINNET = 0x00
TX_VERSION_TESTNET = 0x80

CHAIN_ID_MAINNET = 0x00000001
CHAIN_ID_TESTNET = 0x80000000

AUTH_TYPE_STANDARD = 0x04
AUTH_TYPE_SPONSORED = 0x05

HASH_MODE_P2PKH = 0x00
HASH_MODE_P2SH = 0x01
HASH_MODE_P2WPKH = 0x02
HASH_MODE_P2WSH = 0x03
HASH_MODE_P2SH_NON_SEQUENTIAL = 0x05
HASH_MODE_P2WSH_NON_SEQUENTIAL = 0x07

SINGLESIG_HASH_MODES = (HASH_MODE_P2PKH, HASH_MODE_P2WPKH)
SEQUENTIAL_MULTISIG_HASH_MODES = (HASH_MODE_P2SH, HASH_MODE_P2WSH)
NON_SEQUENTIAL_MULTISIG_HASH_MODES = (HASH_MODE_P2SH_NON_SEQUENTIAL,
                                      HASH_MODE_P2WSH_NON_SEQUENTIAL)
MULTISIG_HASH_MODES = SEQUENTIAL_MULTISIG_HASH_MODES + NON_SEQUENTIAL_MULTISIG_HASH_MODES

PUBKEY_ENCODING_COMPRESSED = 0x00
PUBKEY_ENCODING_UNCOMPRESSED = 0x01

AUTH_FIELD_PUBKEY_COMPRESSED = 0x00
AUTH_FIELD_PUBKEY_UNCOMPRESSED = 0x01
AUTH_FIELD_SIGNATURE_COMPRESSED = 0x02
AUTH_FIELD_SIGNATURE_UNCOMPRESSED = 0x03

ANCHOR_MODE_ON_CHAIN_ONLY = 0x01
ANCHOR_MODE_OFF_CHAIN_ONLY = 0x02
ANCHOR_MODE_ANY = 0x03

POST_CONDITION_MODE_ALLOW = 0x01
POST_CONDITION_MODE_DENY = 0x02

PAYLOAD_TYPE_TOKEN_TRANSFER = 0x00

PRINCIPAL_STANDARD = 0x05
PRINCIPAL_CONTRACT = 0x06

COMPRESSED_PUBKEY_LENGTH = 33
UNCOMPRESSED_PUBKEY_LENGTH = 65
RECOVERABLE_SIGNATURE_LENGTH = 65
HASH160_LENGTH = 20
MEMO_LENGTH = 34
MAX_CONTRACT_NAME_LENGTH = 128


def _pack(fmt, value):
    try:
        return struct.pack(fmt, value)
    except struct.error as err:
        raise SerializationError('Value %r does not fit %r: %s' % (value, fmt, err))


def _unpack(f, fmt):
    return struct.unpack(fmt, ser_read(f, struct.calcsize(fmt)))[0]


def _ser_fixed(f, data, length, what):
    if len(data) != length:
        raise SerializationError('%s must be %d bytes; got %d' % (what, length, len(data)))
    f.write(data)


class CAuthField(Serializable):
    """One slot of a multisig spending condition

    A slot holds either the public key of a signer that has not signed yet,
    or the recoverable signature that replaced it.
    """

    def __init__(self, field_type, data):
        if field_type not in (AUTH_FIELD_PUBKEY_COMPRESSED, AUTH_FIELD_PUBKEY_UNCOMPRESSED,
                              AUTH_FIELD_SIGNATURE_COMPRESSED, AUTH_FIELD_SIGNATURE_UNCOMPRESSED):
            raise ValueError('Unknown auth field type 0x%02x' % field_type)
        self.field_type = field_type
        self.data = bytes(data)

    @classmethod
    def from_pubkey(cls, pubkey):
        """Create a public key field; encoding follows the key length"""
        pubkey = bytes(pubkey)
        if len(pubkey) == COMPRESSED_PUBKEY_LENGTH:
            return cls(AUTH_FIELD_PUBKEY_COMPRESSED, pubkey)
        elif len(pubkey) == UNCOMPRESSED_PUBKEY_LENGTH:
            return cls(AUTH_FIELD_PUBKEY_UNCOMPRESSED, pubkey)
        raise ValueError('Invalid public key length %d' % len(pubkey))

    @classmethod
    def from_signature(cls, signature, pubkey_encoding=PUBKEY_ENCODING_COMPRESSED):
        signature = bytes(signature)
        if len(signature) != RECOVERABLE_SIGNATURE_LENGTH:
            raise ValueError('Invalid signature length %d' % len(signature))
        if pubkey_encoding == PUBKEY_ENCODING_COMPRESSED:
            return cls(AUTH_FIELD_SIGNATURE_COMPRESSED, signature)
        return cls(AUTH_FIELD_SIGNATURE_UNCOMPRESSED, signature)

    @property
    def is_pubkey(self):
        return self.field_type in (AUTH_FIELD_PUBKEY_COMPRESSED, AUTH_FIELD_PUBKEY_UNCOMPRESSED)

    @property
    def is_signature(self):
        return self.field_type in (AUTH_FIELD_SIGNATURE_COMPRESSED, AUTH_FIELD_SIGNATURE_UNCOMPRESSED)

    @property
    def pubkey_encoding(self):
        if self.field_type in (AUTH_FIELD_PUBKEY_COMPRESSED, AUTH_FIELD_SIGNATURE_COMPRESSED):
            return PUBKEY_ENCODING_COMPRESSED
        return PUBKEY_ENCODING_UNCOMPRESSED

    def hex(self):
        return b2x(self.data)

    def stream_serialize(self, f, **kwargs):
        f.write(bytes([self.field_type]))
        if self.field_type == AUTH_FIELD_PUBKEY_COMPRESSED:
            _ser_fixed(f, self.data, COMPRESSED_PUBKEY_LENGTH, 'public key')
        elif self.field_type == AUTH_FIELD_PUBKEY_UNCOMPRESSED:
            _ser_fixed(f, self.data, UNCOMPRESSED_PUBKEY_LENGTH, 'public key')
        else:
            _ser_fixed(f, self.data, RECOVERABLE_SIGNATURE_LENGTH, 'signature')

    @classmethod
    def stream_deserialize(cls, f, **kwargs):
        field_type = ser_read(f, 1)[0]
        if field_type == AUTH_FIELD_PUBKEY_COMPRESSED:
            length = COMPRESSED_PUBKEY_LENGTH
        elif field_type == AUTH_FIELD_PUBKEY_UNCOMPRESSED:
            length = UNCOMPRESSED_PUBKEY_LENGTH
        elif field_type in (AUTH_FIELD_SIGNATURE_COMPRESSED, AUTH_FIELD_SIGNATURE_UNCOMPRESSED):
            length = RECOVERABLE_SIGNATURE_LENGTH
        else:
            raise SerializationError('Unknown auth field type 0x%02x' % field_type)
        return cls(field_type, ser_read(f, length))

    def __repr__(self):
        if self.is_pubkey:
            return 'CAuthField.from_pubkey(x(%r))' % self.hex()
        return 'CAuthField.from_signature(x(%r))' % self.hex()


class CMultiSigSpendingCondition(Serializable):
    """Multisig spending condition

    fields is a fixed-length list addressed by slot index; the slot index is
    the only link between a signer and its signature, so slots are replaced
    in place and never reordered.
    """

    def __init__(self, hash_mode, signer, nonce=0, fee=0, fields=(), signatures_required=1):
        if hash_mode not in MULTISIG_HASH_MODES:
            raise ValueError('Hash mode 0x%02x is not a multisig hash mode' % hash_mode)
        self.hash_mode = hash_mode
        self.signer = bytes(signer)
        self.nonce = nonce
        self.fee = fee
        self.fields = list(fields)
        self.signatures_required = signatures_required

    @property
    def is_sequential(self):
        return self.hash_mode in SEQUENTIAL_MULTISIG_HASH_MODES

    def stream_serialize(self, f, **kwargs):
        f.write(bytes([self.hash_mode]))
        _ser_fixed(f, self.signer, HASH160_LENGTH, 'signer')
        f.write(_pack(b'>Q', self.nonce))
        f.write(_pack(b'>Q', self.fee))
        f.write(_pack(b'>I', len(self.fields)))
        for field in self.fields:
            field.stream_serialize(f)
        f.write(_pack(b'>H', self.signatures_required))

    @classmethod
    def stream_deserialize(cls, f, **kwargs):
        condition = stream_deserialize_spending_condition(f)
        if not isinstance(condition, cls):
            raise SerializationError('Expected a multisig spending condition')
        return condition

    @classmethod
    def _stream_deserialize_body(cls, f, hash_mode):
        signer = ser_read(f, HASH160_LENGTH)
        nonce = _unpack(f, b'>Q')
        fee = _unpack(f, b'>Q')
        fields = [CAuthField.stream_deserialize(f) for i in range(_unpack(f, b'>I'))]
        signatures_required = _unpack(f, b'>H')
        return cls(hash_mode, signer, nonce, fee, fields, signatures_required)

    def __repr__(self):
        return 'CMultiSigSpendingCondition(0x%02x, x(%r), %d, %d, %r, %d)' % (
            self.hash_mode, b2x(self.signer), self.nonce, self.fee,
            self.fields, self.signatures_required)


class CSingleSigSpendingCondition(Serializable):
    """Single-signature spending condition"""

    def __init__(self, hash_mode, signer, nonce=0, fee=0,
                 key_encoding=PUBKEY_ENCODING_COMPRESSED,
                 signature=b'\x00' * RECOVERABLE_SIGNATURE_LENGTH):
        if hash_mode not in SINGLESIG_HASH_MODES:
            raise ValueError('Hash mode 0x%02x is not a single-sig hash mode' % hash_mode)
        self.hash_mode = hash_mode
        self.signer = bytes(signer)
        self.nonce = nonce
        self.fee = fee
        self.key_encoding = key_encoding
        self.signature = bytes(signature)

    def stream_serialize(self, f, **kwargs):
        f.write(bytes([self.hash_mode]))
        _ser_fixed(f, self.signer, HASH160_LENGTH, 'signer')
        f.write(_pack(b'>Q', self.nonce))
        f.write(_pack(b'>Q', self.fee))
        f.write(bytes([self.key_encoding]))
        _ser_fixed(f, self.signature, RECOVERABLE_SIGNATURE_LENGTH, 'signature')

    @classmethod
    def stream_deserialize(cls, f, **kwargs):
        condition = stream_deserialize_spending_condition(f)
        if not isinstance(condition, cls):
            raise SerializationError('Expected a single-sig spending condition')
        return condition

    @classmethod
    def _stream_deserialize_body(cls, f, hash_mode):
        signer = ser_read(f, HASH160_LENGTH)
        nonce = _unpack(f, b'>Q')
        fee = _unpack(f, b'>Q')
        key_encoding = ser_read(f, 1)[0]
        signature = ser_read(f, RECOVERABLE_SIGNATURE_LENGTH)
        return cls(hash_mode, signer, nonce, fee, key_encoding, signature)

    def __repr__(self):
        return 'CSingleSigSpendingCondition(0x%02x, x(%r), %d, %d)' % (
            self.hash_mode, b2x(self.signer), self.nonce, self.fee)


def stream_deserialize_spending_condition(f):
    """Read either kind of spending condition, dispatching on the hash mode"""
    hash_mode = ser_read(f, 1)[0]
    if hash_mode in MULTISIG_HASH_MODES:
        return CMultiSigSpendingCondition._stream_deserialize_body(f, hash_mode)
    elif hash_mode in SINGLESIG_HASH_MODES:
        return CSingleSigSpendingCondition._stream_deserialize_body(f, hash_mode)
    raise SerializationError('Unknown hash mode 0x%02x' % hash_mode)


class CTransactionAuth(Serializable):
    """Transaction authorization: origin condition, plus sponsor if sponsored"""

    def __init__(self, spending_condition, auth_type=AUTH_TYPE_STANDARD,
                 sponsor_spending_condition=None):
        if auth_type == AUTH_TYPE_SPONSORED and sponsor_spending_condition is None:
            raise ValueError('Sponsored auth requires a sponsor spending condition')
        self.auth_type = auth_type
        self.spending_condition = spending_condition
        self.sponsor_spending_condition = sponsor_spending_condition

    def stream_serialize(self, f, **kwargs):
        f.write(bytes([self.auth_type]))
        self.spending_condition.stream_serialize(f)
        if self.auth_type == AUTH_TYPE_SPONSORED:
            self.sponsor_spending_condition.stream_serialize(f)

    @classmethod
    def stream_deserialize(cls, f, **kwargs):
        auth_type = ser_read(f, 1)[0]
        if auth_type == AUTH_TYPE_STANDARD:
            return cls(stream_deserialize_spending_condition(f), auth_type)
        elif auth_type == AUTH_TYPE_SPONSORED:
            origin = stream_deserialize_spending_condition(f)
            sponsor = stream_deserialize_spending_condition(f)
            return cls(origin, auth_type, sponsor)
        raise SerializationError('Unknown auth type 0x%02x' % auth_type)

    def __repr__(self):
        return 'CTransactionAuth(%r, 0x%02x, %r)' % (
            self.spending_condition, self.auth_type, self.sponsor_spending_condition)


class CStacksPrincipal(Serializable):
    """A standard (address) or contract (address.name) principal"""

    def __init__(self, version, hash160, contract_name=None):
        self.version = version
        self.hash160 = bytes(hash160)
        self.contract_name = contract_name

    @classmethod
    def from_string(cls, s):
        """Parse 'SP...' or 'SP....contract-name'

        Raises stxmultisig.c32.C32Error on an invalid address.
        """
        contract_name = None
        if '.' in s:
            s, contract_name = s.split('.', 1)
            if not contract_name or len(contract_name) > MAX_CONTRACT_NAME_LENGTH:
                raise ValueError('Invalid contract name %r' % contract_name)
        version, hash160 = stxmultisig.c32.address_decode(s)
        return cls(version, hash160, contract_name)

    @property
    def address(self):
        return stxmultisig.c32.address(self.version, self.hash160)

    def __str__(self):
        if self.contract_name is None:
            return self.address
        return '%s.%s' % (self.address, self.contract_name)

    def stream_serialize(self, f, **kwargs):
        if self.contract_name is None:
            f.write(bytes([PRINCIPAL_STANDARD, self.version]))
            _ser_fixed(f, self.hash160, HASH160_LENGTH, 'principal hash160')
        else:
            name = self.contract_name.encode('ascii')
            f.write(bytes([PRINCIPAL_CONTRACT, self.version]))
            _ser_fixed(f, self.hash160, HASH160_LENGTH, 'principal hash160')
            f.write(bytes([len(name)]))
            f.write(name)

    @classmethod
    def stream_deserialize(cls, f, **kwargs):
        principal_type = ser_read(f, 1)[0]
        if principal_type not in (PRINCIPAL_STANDARD, PRINCIPAL_CONTRACT):
            raise SerializationError('Unknown principal type 0x%02x' % principal_type)
        version = ser_read(f, 1)[0]
        hash160 = ser_read(f, HASH160_LENGTH)
        if principal_type == PRINCIPAL_STANDARD:
            return cls(version, hash160)
        name = ser_read(f, ser_read(f, 1)[0])
        return cls(version, hash160, name.decode('ascii'))

    def __repr__(self):
        return 'CStacksPrincipal.from_string(%r)' % str(self)


class CTokenTransferPayload(Serializable):
    """STX transfer of amount micro-STX to recipient, with an optional memo

    memo is text, or bytes for a decoded memo that is not valid UTF-8.
    """

    def __init__(self, recipient, amount, memo=''):
        if isinstance(recipient, str):
            recipient = CStacksPrincipal.from_string(recipient)
        self.recipient = recipient
        self.amount = amount
        self.memo = memo

    def stream_serialize(self, f, **kwargs):
        memo = self.memo if isinstance(self.memo, bytes) else self.memo.encode('utf-8')
        if len(memo) > MEMO_LENGTH:
            raise SerializationError('Memo is %d bytes; at most %d allowed' % (len(memo), MEMO_LENGTH))
        f.write(bytes([PAYLOAD_TYPE_TOKEN_TRANSFER]))
        self.recipient.stream_serialize(f)
        f.write(_pack(b'>Q', self.amount))
        f.write(memo + b'\x00' * (MEMO_LENGTH - len(memo)))

    @classmethod
    def stream_deserialize(cls, f, **kwargs):
        payload_type = ser_read(f, 1)[0]
        if payload_type != PAYLOAD_TYPE_TOKEN_TRANSFER:
            raise SerializationError('Unsupported payload type 0x%02x' % payload_type)
        recipient = CStacksPrincipal.stream_deserialize(f)
        amount = _unpack(f, b'>Q')
        memo = ser_read(f, MEMO_LENGTH).rstrip(b'\x00')
        try:
            memo = memo.decode('utf-8')
        except UnicodeDecodeError:
            pass
        return cls(recipient, amount, memo)

    def __repr__(self):
        return 'CTokenTransferPayload(%r, %d, %r)' % (self.recipient, self.amount, self.memo)


class CStacksTransaction(Serializable):
    """A Stacks token-transfer transaction

    Post-conditions are not supported; the list is always empty.
    """

    def __init__(self, version, chain_id, auth, payload,
                 anchor_mode=ANCHOR_MODE_ANY,
                 post_condition_mode=POST_CONDITION_MODE_DENY):
        self.version = version
        self.chain_id = chain_id
        self.auth = auth
        self.payload = payload
        self.anchor_mode = anchor_mode
        self.post_condition_mode = post_condition_mode

    @property
    def spending_condition(self):
        return self.auth.spending_condition

    def is_multisig(self):
        return isinstance(self.auth.spending_condition, CMultiSigSpendingCondition)

    def stream_serialize(self, f, **kwargs):
        f.write(bytes([self.version]))
        f.write(_pack(b'>I', self.chain_id))
        self.auth.stream_serialize(f)
        f.write(bytes([self.anchor_mode, self.post_condition_mode]))
        f.write(_pack(b'>I', 0))
        self.payload.stream_serialize(f)

    @classmethod
    def stream_deserialize(cls, f, **kwargs):
        version = ser_read(f, 1)[0]
        chain_id = _unpack(f, b'>I')
        auth = CTransactionAuth.stream_deserialize(f)
        anchor_mode = ser_read(f, 1)[0]
        post_condition_mode = ser_read(f, 1)[0]
        if _unpack(f, b'>I') != 0:
            raise SerializationError('Transactions with post-conditions are not supported')
        payload = CTokenTransferPayload.stream_deserialize(f)
        return cls(version, chain_id, auth, payload, anchor_mode, post_condition_mode)

    def __repr__(self):
        return 'CStacksTransaction(0x%02x, 0x%08x, %r, %r, 0x%02x, 0x%02x)' % (
            self.version, self.chain_id, self.auth, self.payload,
            self.anchor_mode, self.post_condition_mode)


def tx_encode(tx):
    """Export a transaction as a base64-encoded string"""
    return base64.b64encode(tx.serialize()).decode('ascii')


def tx_decode(b64):
    """Import a transaction from a base64-encoded string"""
    return CStacksTransaction.deserialize(base64.b64decode(b64))


__all__ = (
    'CAuthField',
    'CMultiSigSpendingCondition',
    'CSingleSigSpendingCondition',
    'CTransactionAuth',
    'CStacksPrincipal',
    'CTokenTransferPayload',
    'CStacksTransaction',
    'stream_deserialize_spending_condition',
    'tx_encode',
    'tx_decode',
)
