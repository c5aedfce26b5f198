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

import unittest

from bitcoin.core import b2x, x
from bitcoin.core.serialize import (
    DeserializationExtraDataError,
    SerializationError,
    SerializationTruncationError,
)

from stxmultisig.core.transaction import (
    ANCHOR_MODE_ANY,
    CHAIN_ID_MAINNET,
    HASH_MODE_P2PKH,
    HASH_MODE_P2SH,
    POST_CONDITION_MODE_DENY,
    PUBKEY_ENCODING_COMPRESSED,
    PUBKEY_ENCODING_UNCOMPRESSED,
    TX_VERSION_MAINNET,
    CAuthField,
    CMultiSigSpendingCondition,
    CSingleSigSpendingCondition,
    CStacksPrincipal,
    CStacksTransaction,
    CTokenTransferPayload,
    CTransactionAuth,
    tx_decode,
    tx_encode,
)
from stxmultisig.tests.fakes import load_test_vectors

VECTOR = load_test_vectors('vectors.json')['partially_signed_tx']
RECIPIENT = 'ST2ZRX0K27GW0SP3GJCEMHD95TQGJMKB7G9Y0X1MH'


def make_singlesig_tx():
    condition = CSingleSigSpendingCondition(HASH_MODE_P2PKH, b'\x11' * 20, nonce=3, fee=180)
    payload = CTokenTransferPayload(RECIPIENT, 5000, 'hello')
    return CStacksTransaction(TX_VERSION_MAINNET, CHAIN_ID_MAINNET, CTransactionAuth(condition), payload)


class Test_CStacksTransaction(unittest.TestCase):
    def test_decode_vector(self):
        tx = tx_decode(VECTOR['base64'])
        self.assertEqual(tx.version, TX_VERSION_MAINNET)
        self.assertEqual(tx.chain_id, CHAIN_ID_MAINNET)
        self.assertEqual(tx.anchor_mode, ANCHOR_MODE_ANY)
        self.assertEqual(tx.post_condition_mode, POST_CONDITION_MODE_DENY)
        self.assertTrue(tx.is_multisig())

        condition = tx.spending_condition
        self.assertEqual(condition.hash_mode, HASH_MODE_P2SH)
        self.assertTrue(condition.is_sequential)
        self.assertEqual(b2x(condition.signer), VECTOR['signer'])
        self.assertEqual(condition.nonce, VECTOR['nonce'])
        self.assertEqual(condition.fee, VECTOR['fee'])
        self.assertEqual(condition.signatures_required, 2)

        fields = condition.fields
        self.assertEqual(len(fields), 3)
        self.assertTrue(fields[0].is_pubkey)
        self.assertTrue(fields[1].is_signature)
        self.assertTrue(fields[2].is_pubkey)
        self.assertEqual(fields[0].hex(), VECTOR['publicKeys'][0])
        self.assertEqual(fields[2].hex(), VECTOR['publicKeys'][2])
        self.assertEqual(len(fields[1].data), 65)

        self.assertEqual(tx.payload.amount, VECTOR['amount'])
        self.assertEqual(tx.payload.memo, '')
        self.assertEqual(b2x(tx.payload.recipient.hash160), VECTOR['signer'])
        self.assertEqual(tx.payload.recipient.version, 20)

    def test_reencode_vector(self):
        self.assertEqual(tx_encode(tx_decode(VECTOR['base64'])), VECTOR['base64'])

    def test_singlesig_roundtrip(self):
        tx = make_singlesig_tx()
        tx2 = CStacksTransaction.deserialize(tx.serialize())
        self.assertEqual(tx2, tx)
        self.assertFalse(tx2.is_multisig())
        self.assertEqual(tx2.payload.memo, 'hello')
        self.assertEqual(str(tx2.payload.recipient), RECIPIENT)

    def test_sponsored_auth(self):
        origin = tx_decode(VECTOR['base64']).spending_condition
        sponsor = CSingleSigSpendingCondition(HASH_MODE_P2PKH, b'\x22' * 20, nonce=1, fee=500)
        tx = make_singlesig_tx()
        tx.auth = CTransactionAuth(origin, 0x05, sponsor)
        tx2 = CStacksTransaction.deserialize(tx.serialize())
        self.assertEqual(tx2, tx)
        self.assertEqual(tx2.auth.sponsor_spending_condition.fee, 500)

    def test_contract_principal(self):
        principal = CStacksPrincipal.from_string(RECIPIENT + '.vault')
        self.assertEqual(principal.contract_name, 'vault')
        self.assertEqual(CStacksPrincipal.deserialize(principal.serialize()), principal)
        self.assertEqual(str(principal), RECIPIENT + '.vault')

    def test_truncated(self):
        raw = x(b2x(tx_decode(VECTOR['base64']).serialize()))
        with self.assertRaises(SerializationTruncationError):
            CStacksTransaction.deserialize(raw[:-1])

    def test_extra_data(self):
        raw = tx_decode(VECTOR['base64']).serialize()
        with self.assertRaises(DeserializationExtraDataError):
            CStacksTransaction.deserialize(raw + b'\x00')

    def test_post_conditions_rejected(self):
        raw = bytearray(make_singlesig_tx().serialize())
        # version(1) chain(4) auth(1 + 1 + 20 + 8 + 8 + 1 + 65) anchor(1) mode(1)
        offset = 1 + 4 + 104 + 2
        self.assertEqual(bytes(raw[offset:offset + 4]), b'\x00\x00\x00\x00')
        raw[offset + 3] = 1
        with self.assertRaises(SerializationError):
            CStacksTransaction.deserialize(bytes(raw))

    def test_amount_out_of_range(self):
        tx = make_singlesig_tx()
        tx.payload.amount = 2 ** 64
        with self.assertRaises(SerializationError):
            tx.serialize()

    def test_memo_too_long(self):
        tx = make_singlesig_tx()
        tx.payload.memo = 'm' * 35
        with self.assertRaises(SerializationError):
            tx.serialize()

    def test_raw_memo(self):
        raw = make_singlesig_tx().serialize().replace(b'hello', b'\xffello')
        tx = CStacksTransaction.deserialize(raw)
        self.assertEqual(tx.payload.memo, b'\xffello')
        self.assertEqual(tx.serialize(), raw)

    def test_bytes_memo(self):
        tx = make_singlesig_tx()
        tx.payload.memo = b'\x80\x81'
        self.assertEqual(CStacksTransaction.deserialize(tx.serialize()), tx)


class Test_CAuthField(unittest.TestCase):
    def test_pubkey(self):
        field = CAuthField.from_pubkey(x(VECTOR['publicKeys'][0]))
        self.assertTrue(field.is_pubkey)
        self.assertFalse(field.is_signature)
        self.assertEqual(field.serialize()[0], 0x00)
        self.assertEqual(len(field.serialize()), 34)

    def test_signature(self):
        field = CAuthField.from_signature(b'\x01' * 65)
        self.assertTrue(field.is_signature)
        self.assertEqual(field.serialize()[0], 0x02)
        self.assertEqual(CAuthField.deserialize(field.serialize()), field)

    def test_pubkey_encoding(self):
        compressed = CAuthField.from_pubkey(x(VECTOR['publicKeys'][0]))
        uncompressed = CAuthField.from_pubkey(b'\x04' + b'\x01' * 64)
        self.assertEqual(compressed.pubkey_encoding, PUBKEY_ENCODING_COMPRESSED)
        self.assertEqual(uncompressed.pubkey_encoding, PUBKEY_ENCODING_UNCOMPRESSED)
        sig = CAuthField.from_signature(b'\x01' * 65, PUBKEY_ENCODING_UNCOMPRESSED)
        self.assertEqual(sig.field_type, 0x03)
        self.assertEqual(sig.pubkey_encoding, PUBKEY_ENCODING_UNCOMPRESSED)

    def test_invalid_lengths(self):
        with self.assertRaises(ValueError):
            CAuthField.from_pubkey(b'\x02' * 32)
        with self.assertRaises(ValueError):
            CAuthField.from_signature(b'\x01' * 64)

    def test_unknown_type(self):
        with self.assertRaises(SerializationError):
            CAuthField.deserialize(b'\x09' + b'\x00' * 33)

    def test_multisig_hash_mode_required(self):
        with self.assertRaises(ValueError):
            CMultiSigSpendingCondition(HASH_MODE_P2PKH, b'\x00' * 20)


if __name__ == "__main__":
    unittest.main()
