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

"""Exceptions raised while building and signing multisig transactions"""


class MultisigError(Exception):
    """Base class for all multisig errors"""


class InvalidThreshold(MultisigError, ValueError):
    """Raised when the required signature count is outside [1, n]"""

    def __init__(self, threshold, num_keys):
        super(InvalidThreshold, self).__init__(
            'Invalid threshold: %r signatures required with %d public keys' %
            (threshold, num_keys))
        self.threshold = threshold
        self.num_keys = num_keys


class ScriptDerivationError(MultisigError):
    """Raised when an address can't be constructed from a redeem script"""


class AddressMismatch(MultisigError):
    """Raised when no candidate key order reproduces the expected address"""

    def __init__(self, expected, candidates):
        super(AddressMismatch, self).__init__(
            'Public keys did not match expected address. Expected %s, but '
            'pubkeys correspond to %s' % (expected, ' or '.join(candidates)))
        self.expected = expected
        self.candidates = tuple(candidates)


class SignerNotFound(MultisigError):
    """Raised when the signer's public key is not among the unsigned slots"""

    def __init__(self, pubkey, slots):
        super(SignerNotFound, self).__init__(
            'Pubkey %s not found in spending auth fields: %s' %
            (pubkey, ', '.join(str(s) for s in slots)))
        self.pubkey = pubkey
        self.slots = tuple(slots)


class NotMultisig(MultisigError):
    """Raised when a transaction uses a single-signature spending condition"""


class SigningModeMismatch(MultisigError):
    """Raised when independent signing is used on a sequential transaction"""


class ChainBroken(MultisigError):
    """Raised when a previous sighash is supplied without a previous signature"""


class DeviceError(MultisigError):
    """Raised when the signing device returns a non-success status"""

    def __init__(self, response):
        super(DeviceError, self).__init__(
            'Signing device responded with errors: return code 0x%04x' %
            response.return_code)
        self.response = response


class ValidationError(MultisigError, ValueError):
    """Raised when a batch input record is malformed"""

    def __init__(self, index, field, value, reason='not valid'):
        if index is None:
            where = 'input data'
        elif field is None:
            where = 'element %s' % index
        else:
            where = "property '%s' of element %s" % (field, index)
        super(ValidationError, self).__init__(
            'Transaction input validation failed: %s %s: %r' % (where, reason, value))
        self.index = index
        self.field = field
        self.value = value


__all__ = (
    'MultisigError',
    'InvalidThreshold',
    'ScriptDerivationError',
    'AddressMismatch',
    'SignerNotFound',
    'NotMultisig',
    'SigningModeMismatch',
    'ChainBroken',
    'DeviceError',
    'ValidationError',
)
