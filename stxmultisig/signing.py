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

"""Adding signatures to multisig transactions with an external signing device

Private keys never leave the device; it is addressed only by derivation
path. Two modes exist:

sign_with_known_slot - non-sequential transactions. Every signer signs the
    same serialized transaction, in any order.

sign_with_chaining - sequential transactions. Each signer's message includes
    the previous signer's post-sign hash and signature, so slot i can only
    be signed once slot i-1 is.
"""

import logging

from bitcoin.core import b2x, x

from stxmultisig.core.transaction import CAuthField
from stxmultisig.errors import (
    ChainBroken,
    DeviceError,
    NotMultisig,
    SignerNotFound,
    SigningModeMismatch,
)
from stxmultisig.wallet import make_multisig_address

log = logging.getLogger(__name__)

# Single-sig keys: m/44'/5757'/0'/0/x
XPUB_PATH = "m/44'/5757'/0'"

# Multisig script keys: m/5757'/0'/0/0/x
BTC_MULTISIG_SCRIPT_PATH = "m/5757'/0'/0"

RETURN_CODE_OK = 0x9000


class DeviceResponse(object):
    """Result of a device signing request

    signature_vrs is the 65-byte recoverable signature; post_sign_hash is the
    sighash after this signature, which the next sequential signer needs.
    """

    def __init__(self, return_code, signature_vrs=b'', post_sign_hash=b'', error_message=''):
        self.return_code = return_code
        self.signature_vrs = bytes(signature_vrs)
        self.post_sign_hash = bytes(post_sign_hash)
        self.error_message = error_message

    @property
    def ok(self):
        return self.return_code == RETURN_CODE_OK

    def __repr__(self):
        return 'DeviceResponse(0x%04x, x(%r), x(%r), %r)' % (
            self.return_code, b2x(self.signature_vrs), b2x(self.post_sign_hash),
            self.error_message)


class SigningDevice(object):
    """Signing device collaborator (a hardware wallet app, or a test double)"""

    def derive_public_key(self, path):
        """Return the compressed public key at path as bytes"""
        raise NotImplementedError

    def sign(self, path, message):
        """Sign message with the key at path, returning a DeviceResponse"""
        raise NotImplementedError


def get_pubkey(device, path):
    """Hex public key of the device key at path"""
    return b2x(device.derive_public_key(path))


def get_pubkey_singlesig_standard_index(device, index):
    return get_pubkey(device, '%s/0/%d' % (XPUB_PATH, index))


def get_pubkey_multisig_standard_index(device, index):
    """(pubkey, path) of the index'th standard multisig key"""
    path = '%s/0/%d' % (BTC_MULTISIG_SCRIPT_PATH, index)
    return get_pubkey(device, path), path


def generate_multisig_address(device, signers, required, params=None):
    """Make a multisig address from the device's first standard multisig keys

    Keys are sorted, so the address matches the sorted order that
    match_address tries first. Returns (address, pubkeys, paths).
    """
    keypaths = sorted(get_pubkey_multisig_standard_index(device, i) for i in range(signers))
    pubkeys = [pubkey for pubkey, path in keypaths]
    paths = [path for pubkey, path in keypaths]

    log.info('Making a %d-of-%d multisig address', required, len(keypaths))
    log.info('Pubkeys: %s', ', '.join(pubkeys))
    log.info('Paths: %s', ', '.join(paths))

    return make_multisig_address(pubkeys, required, params), pubkeys, paths


def _slot_pubkeys(fields):
    """Hex key per slot, None for slots that already hold a signature"""
    return [field.hex() if field.is_pubkey else None for field in fields]


def _find_slot(pubkey, fields):
    slots = _slot_pubkeys(fields)
    try:
        return slots.index(pubkey)
    except ValueError:
        raise SignerNotFound(pubkey, slots)


def _check_response(resp):
    if not resp.ok:
        log.error('Signing device responded with errors: %r', resp)
        raise DeviceError(resp)


def sign_with_known_slot(device, path, tx):
    """Sign a non-sequential multisig transaction in place

    The device signs tx.serialize(); the signature replaces the signer's
    public-key slot and no other slot is touched. Returns tx.
    """
    pubkey = get_pubkey(device, path)

    spending_condition = tx.auth.spending_condition
    if not tx.is_multisig():
        raise NotMultisig('Tx has single signature spending condition')
    if spending_condition.is_sequential:
        raise SigningModeMismatch(
            'Tx uses sequential hash mode 0x%02x; sign it with sign_with_chaining()' %
            spending_condition.hash_mode)

    fields = spending_condition.fields
    if not fields:
        raise NotMultisig('Tx has no auth fields, not a valid multisig transaction')

    index = _find_slot(pubkey, fields)

    log.info('Signing slot %d of %d with key %s', index, len(fields), pubkey)
    resp = device.sign(path, tx.serialize())
    _check_response(resp)

    fields[index] = CAuthField.from_signature(resp.signature_vrs, fields[index].pubkey_encoding)
    return tx


def sign_with_chaining(device, path, partial_fields, unsigned_tx, prev_sighash=None):
    """Sign one slot of a sequential multisig transaction

    unsigned_tx is the serialized transaction all signers start from. When
    prev_sighash (hex) is given, the slot right before the signer's must
    already hold a signature, and the device signs

        unsigned_tx + prev_sighash + pubkey encoding byte + previous signature

    otherwise it signs unsigned_tx. Returns (fields, next_sighash) where
    fields is a new list with the signer's slot replaced and next_sighash is
    the hex chain state to hand to the next signer.
    """
    pubkey = get_pubkey(device, path)
    out_fields = list(partial_fields)
    index = _find_slot(pubkey, partial_fields)

    if prev_sighash:
        if index == 0:
            raise ChainBroken('Previous sighash was supplied, but signer %s is in the first slot' %
                              pubkey)
        prev_field = partial_fields[index - 1]
        if not prev_field.is_signature:
            raise ChainBroken('Previous sighash was supplied, but previous signer (slot %d) '
                              'has not signed the transaction' % (index - 1))
        message = (bytes(unsigned_tx) + x(prev_sighash) +
                   bytes([prev_field.pubkey_encoding]) + prev_field.data)
    else:
        message = bytes(unsigned_tx)

    log.info('Signing slot %d of %d with key %s (chained: %s)',
             index, len(partial_fields), pubkey, bool(prev_sighash))
    resp = device.sign(path, message)
    _check_response(resp)

    next_sighash = b2x(resp.post_sign_hash)
    log.debug('Next sighash: %s', next_sighash)

    out_fields[index] = CAuthField.from_signature(resp.signature_vrs,
                                                  partial_fields[index].pubkey_encoding)
    return out_fields, next_sighash


__all__ = (
    'XPUB_PATH',
    'BTC_MULTISIG_SCRIPT_PATH',
    'RETURN_CODE_OK',
    'DeviceResponse',
    'SigningDevice',
    'get_pubkey',
    'get_pubkey_singlesig_standard_index',
    'get_pubkey_multisig_standard_index',
    'generate_multisig_address',
    'sign_with_known_slot',
    'sign_with_chaining',
)
