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

"""Reading the signing state of a multisig transaction"""

from stxmultisig.errors import NotMultisig


class AuthFieldInfo(object):
    """Summary of a multisig spending condition

    unsigned_slot_keys lists, in slot order, the hex public keys of slots
    that still hold a public key rather than a signature.
    """

    def __init__(self, field_count, unsigned_slot_keys, signature_count, threshold_required):
        self.field_count = field_count
        self.unsigned_slot_keys = unsigned_slot_keys
        self.signature_count = signature_count
        self.threshold_required = threshold_required

    @property
    def is_fully_signed(self):
        return self.signature_count >= self.threshold_required

    def to_dict(self):
        return {
            'field_count': self.field_count,
            'unsigned_slot_keys': list(self.unsigned_slot_keys),
            'signature_count': self.signature_count,
            'threshold_required': self.threshold_required,
        }

    def __eq__(self, other):
        if not isinstance(other, AuthFieldInfo):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        return 'AuthFieldInfo(%d, %r, %d, %d)' % (
            self.field_count, self.unsigned_slot_keys,
            self.signature_count, self.threshold_required)


def get_auth_field_info(tx):
    if not tx.is_multisig():
        raise NotMultisig('Tx has single signature spending condition')

    spending_condition = tx.auth.spending_condition
    unsigned_slot_keys = []
    signature_count = 0
    for field in spending_condition.fields:
        if field.is_pubkey:
            unsigned_slot_keys.append(field.hex())
        else:
            signature_count += 1

    return AuthFieldInfo(len(spending_condition.fields), unsigned_slot_keys,
                         signature_count, spending_condition.signatures_required)


def get_signers_after(pubkey, fields):
    """Slots after pubkey's slot that already hold a signature

    Returns None if pubkey is not in an unsigned slot, either because it is
    not a signer or because it has already signed.
    """
    pubkey = pubkey.lower()
    for index, field in enumerate(fields):
        if field.is_pubkey and field.hex() == pubkey:
            break
    else:
        return None

    return [i for i in range(index + 1, len(fields)) if fields[i].is_signature]


__all__ = (
    'AuthFieldInfo',
    'get_auth_field_info',
    'get_signers_after',
)
