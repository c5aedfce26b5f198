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

"""Building unsigned multisig STX transfers

Every transaction built here uses the non-sequential P2SH hash mode, and its
spending condition starts with one public-key slot per signer in the order
that reproduces the sender address.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from bitcoin.core import x
from bitcoin.core.serialize import Hash160

import stxmultisig
from stxmultisig.core.script import build_redeem_script
from stxmultisig.core.transaction import (
    CAuthField,
    CMultiSigSpendingCondition,
    CStacksTransaction,
    CTokenTransferPayload,
    CTransactionAuth,
    HASH_MODE_P2SH_NON_SEQUENTIAL,
    MEMO_LENGTH,
    TX_VERSION_MAINNET,
    TX_VERSION_TESTNET,
)
from stxmultisig.wallet import (
    CStacksAddress,
    CStacksAddressError,
    derive_address,
    match_address,
    normalize_pubkeys,
)

log = logging.getLogger(__name__)

MICROSTX_PER_STX = 1000000


class MultisigTxInput(object):
    """One transfer to build

    amount is in micro-STX and amount_stx in STX; when both are given they
    are added together. Numeric values may be ints or decimal strings.
    """

    # batch record key -> attribute
    FIELDS = (
        ('sender', 'sender'),
        ('recipient', 'recipient'),
        ('fee', 'fee'),
        ('amount', 'amount'),
        ('amount_stx', 'amount_stx'),
        ('publicKeys', 'public_keys'),
        ('numSignatures', 'num_signatures'),
        ('nonce', 'nonce'),
        ('network', 'network'),
        ('memo', 'memo'),
    )

    def __init__(self, recipient, public_keys, num_signatures, amount=None,
                 amount_stx=None, sender=None, fee=None, nonce=None,
                 network=None, memo=None):
        self.recipient = recipient
        self.public_keys = list(public_keys)
        self.num_signatures = num_signatures
        self.amount = amount
        self.amount_stx = amount_stx
        self.sender = sender
        self.fee = fee
        self.nonce = nonce
        self.network = network
        self.memo = memo

    @classmethod
    def from_dict(cls, d):
        kwargs = dict((attr, d[key]) for key, attr in cls.FIELDS if key in d)
        return cls(**kwargs)

    def to_dict(self):
        return dict((key, getattr(self, attr)) for key, attr in self.FIELDS
                    if getattr(self, attr) is not None)

    def __repr__(self):
        return 'MultisigTxInput.from_dict(%r)' % self.to_dict()


def _given(value):
    return value is not None and value != ''


def get_amount(tx_input):
    """Total amount in micro-STX"""
    amount = 0
    if _given(tx_input.amount):
        amount += int(tx_input.amount)
    if _given(tx_input.amount_stx):
        amount += int(tx_input.amount_stx) * MICROSTX_PER_STX
    return amount


def get_params_from_tx(tx):
    """Params for the network a transaction was built for"""
    if tx.version == TX_VERSION_MAINNET:
        return stxmultisig.MainParams()
    elif tx.version == TX_VERSION_TESTNET:
        return stxmultisig.TestNetParams()
    log.warning('Unknown transaction version 0x%02x, assuming testnet', tx.version)
    return stxmultisig.TestNetParams()


def make_spending_condition_fields(pubkeys):
    """One public-key slot per key, in the order given"""
    return [CAuthField.from_pubkey(x(k)) for k in normalize_pubkeys(pubkeys)]


def _sender_params(sender):
    """Network of the sender address, the default params if it doesn't decode"""
    try:
        return CStacksAddress(sender).get_params()
    except CStacksAddressError:
        return stxmultisig.params


def build_transfer(tx_input, nonce_cache=None):
    """Build an unsigned multisig STX transfer

    With a sender, the public keys are reordered to the order that produces
    the sender address (AddressMismatch if there is none). Without a nonce,
    one is taken from nonce_cache for the multisig address.

    The network is tx_input.network if given, else that of the sender
    address, else the selected default.
    """
    public_keys = normalize_pubkeys(tx_input.public_keys)
    required = tx_input.num_signatures

    network = stxmultisig.parse_network_name(tx_input.network)
    if network is not None:
        params = stxmultisig.get_params(network)
    elif tx_input.sender:
        params = _sender_params(tx_input.sender)
    else:
        params = stxmultisig.params

    if tx_input.sender:
        # a sender from another network than params never matches
        public_keys = match_address(public_keys, required, tx_input.sender, params)

    redeem_script = build_redeem_script(public_keys, required)

    if _given(tx_input.nonce):
        nonce = int(tx_input.nonce)
    elif nonce_cache is not None:
        nonce = nonce_cache.get_nonce(derive_address(redeem_script, params))
    else:
        raise ValueError('No nonce given for transfer to %s and no nonce cache to fetch one' %
                         tx_input.recipient)

    fee = int(tx_input.fee) if _given(tx_input.fee) else 0

    memo = tx_input.memo or ''
    if len(memo.encode('utf-8')) > MEMO_LENGTH:
        raise ValueError('Memo %r is longer than %d bytes' % (memo, MEMO_LENGTH))

    amount = get_amount(tx_input)

    spending_condition = CMultiSigSpendingCondition(
        HASH_MODE_P2SH_NON_SEQUENTIAL,
        Hash160(redeem_script),
        nonce=nonce,
        fee=fee,
        fields=make_spending_condition_fields(public_keys),
        signatures_required=required)
    payload = CTokenTransferPayload(tx_input.recipient, amount, memo)

    log.debug('Built %d-of-%d %s transfer of %d uSTX to %s (nonce %d, fee %d)',
              required, len(public_keys), params.NAME, amount, tx_input.recipient, nonce, fee)

    return CStacksTransaction(params.TX_VERSION, params.CHAIN_ID,
                              CTransactionAuth(spending_condition), payload)


def build_transfers(inputs, nonce_cache=None, max_workers=None):
    """Build several transfers concurrently

    Every input is built even if others fail. Results come back in input
    order; if any build failed, the first failure in input order is raised.
    """
    inputs = list(inputs)
    if not inputs:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(build_transfer, tx_input, nonce_cache)
                   for tx_input in inputs]

    for i, future in enumerate(futures):
        err = future.exception()
        if err is not None:
            log.error('Failed to build transaction %d: %s', i, err)

    return [future.result() for future in futures]


__all__ = (
    'MICROSTX_PER_STX',
    'MultisigTxInput',
    'get_amount',
    'get_params_from_tx',
    'make_spending_condition_fields',
    'build_transfer',
    'build_transfers',
)
