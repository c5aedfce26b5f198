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

import json
import unittest

from stxmultisig.builder import build_transfers
from stxmultisig.errors import ValidationError
from stxmultisig.inputs import (
    b64_decode,
    b64_encode,
    encoded_txs_from_text,
    make_key_path_map_from_csv_file,
    make_key_path_map_from_csv_text,
    make_tx_inputs_from_csv_file,
    make_tx_inputs_from_csv_text,
    make_tx_inputs_from_file,
    make_tx_inputs_from_text,
    validate_tx_inputs,
)
from stxmultisig.nonce import NonceCache
from stxmultisig.tests.fakes import FakeNode, data_path

RECIPIENT = 'ST2ZRX0K27GW0SP3GJCEMHD95TQGJMKB7G9Y0X1MH'
PUBKEYS = [
    '02b30fafab3a12372c5d150d567034f37d60a91168009a779498168b0e9d8ec7f2',
    '03ce61f1d155738a5e434fc8a61c3e104f891d1ec71576e8ad85abb68b34670d35',
    '03ef2340518b5867b23598a9cf74611f8b98064f7d55cdb8c107c67b5efcbc5c77',
]


def record(**kwargs):
    d = {'recipient': RECIPIENT, 'amount': '1000', 'publicKeys': list(PUBKEYS), 'numSignatures': 2}
    d.update(kwargs)
    return d


class Test_validate_tx_inputs(unittest.TestCase):
    def assertInvalid(self, data, index, field):
        with self.assertRaises(ValidationError) as cm:
            validate_tx_inputs(data)
        self.assertEqual(cm.exception.index, index)
        self.assertEqual(cm.exception.field, field)
        return cm.exception

    def test_valid(self):
        inputs = validate_tx_inputs([record(), record(amount=None, amount_stx='2', memo='hi')])
        self.assertEqual(len(inputs), 2)
        self.assertEqual(inputs[1].amount_stx, '2')
        self.assertEqual(inputs[1].public_keys, PUBKEYS)

    def test_not_array(self):
        self.assertInvalid({'recipient': RECIPIENT}, None, None)

    def test_not_object(self):
        self.assertInvalid([record(), 'tx'], 1, None)

    def test_recipient(self):
        self.assertInvalid([record(recipient=None)], 0, 'recipient')
        self.assertInvalid([record(), record(recipient='SP000')], 1, 'recipient')

    def test_amounts(self):
        self.assertInvalid([record(amount=None)], 0, 'amount')
        self.assertInvalid([record(amount=1000)], 0, 'amount')
        self.assertInvalid([record(amount='1.5')], 0, 'amount')
        self.assertInvalid([record(amount_stx='-1')], 0, 'amount_stx')

    def test_public_keys(self):
        self.assertInvalid([record(publicKeys='02b3')], 0, 'publicKeys')
        self.assertInvalid([record(publicKeys=[])], 0, 'publicKeys')
        self.assertInvalid([record(publicKeys=PUBKEYS + [7])], 0, 'publicKeys')
        self.assertInvalid([record(publicKeys=PUBKEYS + ['zz'])], 0, 'publicKeys')

    def test_num_signatures(self):
        self.assertInvalid([record(numSignatures='2')], 0, 'numSignatures')
        self.assertInvalid([record(numSignatures=0)], 0, 'numSignatures')
        self.assertInvalid([record(numSignatures=True)], 0, 'numSignatures')
        err = self.assertInvalid([record(numSignatures=4)], 0, 'numSignatures')
        self.assertIn('exceeds', str(err))

    def test_optional_fields(self):
        self.assertInvalid([record(fee=300)], 0, 'fee')
        self.assertInvalid([record(nonce='x')], 0, 'nonce')
        self.assertInvalid([record(sender=5)], 0, 'sender')
        self.assertInvalid([record(memo='m' * 35)], 0, 'memo')
        self.assertInvalid([record(network='regtest')], 0, 'network')
        validate_tx_inputs([record(fee='300', nonce='0', network='Testnet', sender='', memo='')])

    def test_message_names_field_and_index(self):
        err = self.assertInvalid([record(), record(), record(fee='abc')], 2, 'fee')
        self.assertIn("'fee'", str(err))
        self.assertIn('element 2', str(err))


class Test_json_inputs(unittest.TestCase):
    def test_from_text(self):
        inputs = make_tx_inputs_from_text(json.dumps([record(nonce='1')]))
        self.assertEqual(inputs[0].nonce, '1')

    def test_from_file(self):
        inputs = make_tx_inputs_from_file(data_path('multisig_inputs.json'))
        self.assertEqual(len(inputs), 2)
        self.assertEqual(inputs[1].sender, 'SM2R12RQCV9SCAZPM37VSCVP4X3EQK1Y70KCV7EDE')

        txs = build_transfers(inputs, NonceCache(FakeNode(default=8)))
        self.assertEqual(txs[0].spending_condition.nonce, 4)
        self.assertEqual(txs[1].spending_condition.nonce, 8)
        self.assertEqual([f.hex() for f in txs[1].spending_condition.fields], PUBKEYS)
        self.assertEqual(txs[1].payload.amount, 1000000)
        self.assertEqual(txs[1].payload.memo, 'payroll')


class Test_csv_inputs(unittest.TestCase):
    def test_from_file(self):
        inputs = make_tx_inputs_from_csv_file(data_path('multisig_inputs.csv'))
        self.assertEqual(len(inputs), 2)

        first, second = inputs
        self.assertEqual(first.public_keys, PUBKEYS)
        self.assertEqual(first.num_signatures, 3)
        self.assertIsNone(first.sender)
        self.assertIsNone(first.amount_stx)
        self.assertEqual(first.network, 'testnet')
        self.assertEqual(second.public_keys, [PUBKEYS[2], PUBKEYS[0], PUBKEYS[1]])
        self.assertEqual(second.memo, 'payroll')

        txs = build_transfers(inputs)
        self.assertEqual(txs[1].payload.amount, 2000000)
        self.assertEqual([f.hex() for f in txs[1].spending_condition.fields], PUBKEYS)

    def test_sparse_keys(self):
        text = ('recipient,amount,publicKeys/0,publicKeys/2,numSignatures\n'
                '%s,1,%s,%s,1\n' % (RECIPIENT, PUBKEYS[0], PUBKEYS[1]))
        with self.assertRaises(ValidationError) as cm:
            make_tx_inputs_from_csv_text(text)
        self.assertEqual(cm.exception.field, 'publicKeys')

    def test_multidimensional(self):
        text = 'recipient,keys/0/1\n%s,1\n' % RECIPIENT
        with self.assertRaises(ValidationError):
            make_tx_inputs_from_csv_text(text)

    def test_too_many_columns(self):
        text = 'recipient,amount\n%s,1,extra\n' % RECIPIENT
        with self.assertRaises(ValidationError):
            make_tx_inputs_from_csv_text(text)

    def test_bad_num_signatures(self):
        text = ('recipient,amount,publicKeys/0,numSignatures\n'
                '%s,1,%s,one\n' % (RECIPIENT, PUBKEYS[0]))
        with self.assertRaises(ValidationError) as cm:
            make_tx_inputs_from_csv_text(text)
        self.assertEqual(cm.exception.field, 'numSignatures')


class Test_key_path_map(unittest.TestCase):
    def test_from_file(self):
        key_paths = make_key_path_map_from_csv_file(data_path('key_path_map.csv'))
        self.assertEqual(key_paths.get('02994ea56a1da2683c463f896d12ee0a3c33972836a8e0d6ee430660c6b22a496b'),
                         "m/5757'/0'/0/0/1")
        self.assertIsNone(key_paths.get('03ef2340518b5867b23598a9cf74611f8b98064f7d55cdb8c107c67b5efcbc5c77'))

    def test_missing_path(self):
        with self.assertRaises(ValidationError):
            make_key_path_map_from_csv_text('key,path\n%s,\n' % PUBKEYS[0])


class Test_encoded_txs(unittest.TestCase):
    def test_valid(self):
        self.assertEqual(encoded_txs_from_text('["AAA=", "BBB="]'), ['AAA=', 'BBB='])

    def test_not_array(self):
        with self.assertRaises(ValidationError):
            encoded_txs_from_text('{"tx": "AAA="}')

    def test_bad_element(self):
        with self.assertRaises(ValidationError) as cm:
            encoded_txs_from_text('["AAA=", 5]')
        self.assertEqual(cm.exception.index, 1)

    def test_b64_object(self):
        obj = {'tx': 'AAA=', 'paths': ["m/5757'/0'/0/0/1"]}
        self.assertEqual(b64_decode(b64_encode(obj)), obj)


if __name__ == "__main__":
    unittest.main()
