"""
Tests for the jor-wallet command line.
"""

import pytest
from loguru import logger
from typer.testing import CliRunner

from jorcore.address import Address
from jorcore.fragment import Transaction
from jorcore.models import Discrimination, LinearFee
from jorwallet.cli import app, load_mnemonic

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    monkeypatch.delenv("MNEMONIC", raising=False)
    monkeypatch.delenv("PASSPHRASE", raising=False)
    yield
    logger.remove()


@pytest.fixture
def block0_file(tmp_path, icarus_keys, icarus_address_at, make_block0):
    path = tmp_path / "block0.bin"
    path.write_bytes(
        make_block0(
            legacy=[
                (icarus_address_at(icarus_keys, 0, 0), 5000),
                (icarus_address_at(icarus_keys, 0, 2), 3000),
            ],
            outputs=[(Address.account(icarus_keys.wallet_id, Discrimination.TEST), 400)],
        )
    )
    return path


class TestLoadMnemonic:
    def test_argument_wins(self, tmp_path):
        path = tmp_path / "words.txt"
        path.write_text("from file\n")
        assert load_mnemonic("from argument", path) == "from argument"

    def test_file(self, tmp_path):
        path = tmp_path / "words.txt"
        path.write_text("  from file\n")
        assert load_mnemonic(None, path) == "from file"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_mnemonic(None, tmp_path / "missing.txt")

    def test_nothing(self):
        with pytest.raises(ValueError, match="Mnemonic required"):
            load_mnemonic(None, None)


class TestRecoverCommand:
    def test_recover(self, mnemonic_15, icarus_keys):
        result = runner.invoke(app, ["recover", "--mnemonic", mnemonic_15])
        assert result.exit_code == 0, result.output
        assert "icarus" in result.output
        assert icarus_keys.wallet_id.hex() in result.output

    def test_recover_from_env(self, mnemonic_15, icarus_keys):
        result = runner.invoke(app, ["recover"], env={"MNEMONIC": mnemonic_15})
        assert result.exit_code == 0, result.output
        assert icarus_keys.wallet_id.hex() in result.output

    def test_recover_from_file(self, tmp_path, mnemonic_12, daedalus_keys):
        path = tmp_path / "words.txt"
        path.write_text(mnemonic_12 + "\n")
        result = runner.invoke(app, ["recover", "-f", str(path)])
        assert result.exit_code == 0, result.output
        assert daedalus_keys.wallet_id.hex() in result.output

    def test_invalid_mnemonic(self):
        result = runner.invoke(app, ["recover", "--mnemonic", "abandon abandon abandon"])
        assert result.exit_code == 1

    def test_no_mnemonic(self):
        result = runner.invoke(app, ["recover"])
        assert result.exit_code == 1


class TestFundsCommand:
    def test_funds(self, mnemonic_15, block0_file):
        result = runner.invoke(
            app, ["funds", "-b", str(block0_file), "--mnemonic", mnemonic_15]
        )
        assert result.exit_code == 0, result.output
        assert "2 UTXOs" in result.output
        assert "m/44'/1815'/0'/0/2" in result.output
        assert "Account value: 400" in result.output
        assert "Total value:   8400" in result.output

    def test_missing_block0(self, mnemonic_15, tmp_path):
        result = runner.invoke(
            app, ["funds", "-b", str(tmp_path / "missing.bin"), "--mnemonic", mnemonic_15]
        )
        assert result.exit_code == 1

    def test_malformed_block0(self, mnemonic_15, tmp_path):
        path = tmp_path / "block0.bin"
        path.write_bytes(b"\x00" * 10)
        result = runner.invoke(app, ["funds", "-b", str(path), "--mnemonic", mnemonic_15])
        assert result.exit_code == 1


class TestConvertCommand:
    def test_convert(self, mnemonic_15, block0_file):
        result = runner.invoke(
            app,
            ["convert", "-b", str(block0_file), "--mnemonic", mnemonic_15, "-l", "ERROR"],
        )
        assert result.exit_code == 0, result.output
        lines = result.output.split()
        assert len(lines) == 1
        tx = Transaction.from_fragment_bytes(bytes.fromhex(lines[0]))
        assert tx.input_total == 8000

    def test_max_inputs(self, mnemonic_15, block0_file):
        result = runner.invoke(
            app,
            [
                "convert",
                "-b",
                str(block0_file),
                "--mnemonic",
                mnemonic_15,
                "--max-inputs",
                "1",
                "-l",
                "ERROR",
            ],
        )
        assert result.exit_code == 0, result.output
        assert len(result.output.split()) == 2

    def test_ignored_entries_are_reported_by_reason(
        self, tmp_path, mnemonic_15, icarus_keys, icarus_address_at, make_block0
    ):
        path = tmp_path / "block0.bin"
        path.write_bytes(
            make_block0(
                legacy=[
                    (icarus_address_at(icarus_keys, 0, 0), 150),
                    (icarus_address_at(icarus_keys, 0, 1), 150),
                    (icarus_address_at(icarus_keys, 0, 2), 50),
                ],
                block_fees=LinearFee(constant=1000, coefficient=100),
            )
        )
        result = runner.invoke(
            app, ["convert", "-b", str(path), "--mnemonic", mnemonic_15, "-l", "WARNING"]
        )
        assert result.exit_code == 0, result.output
        assert "1 dust entries ignored (total 50)" in result.output
        assert "2 entries ignored, their batch cannot pay its fee (total 300)" in result.output
        assert "3 entries ignored as dust" not in result.output


class TestVoteCommand:
    def vote_args(self, mnemonic, block0_file, **overrides):
        options = {
            "--plan-id": "ab" * 32,
            "--proposal": "3",
            "--num-choices": "4",
            "--choice": "2",
            "--value": "1000",
            "--counter": "1",
        }
        options.update(overrides)
        args = ["vote", "-b", str(block0_file), "--mnemonic", mnemonic, "-l", "ERROR"]
        for name, value in options.items():
            args += [name, value]
        return args

    def test_vote(self, mnemonic_15, block0_file):
        result = runner.invoke(app, self.vote_args(mnemonic_15, block0_file))
        assert result.exit_code == 0, result.output
        tx = Transaction.from_fragment_bytes(bytes.fromhex(result.output.strip()))
        assert tx.certificate.vote_plan_id == bytes([0xAB]) * 32
        assert tx.certificate.proposal_index == 3
        assert tx.certificate.choice == 2

    def test_choice_out_of_range(self, mnemonic_15, block0_file):
        args = self.vote_args(mnemonic_15, block0_file, **{"--choice": "4"})
        assert runner.invoke(app, args).exit_code == 1

    def test_private_plan(self, mnemonic_15, block0_file):
        args = self.vote_args(mnemonic_15, block0_file, **{"--payload-type": "2"})
        assert runner.invoke(app, args).exit_code == 1

    def test_invalid_plan_id(self, mnemonic_15, block0_file):
        args = self.vote_args(mnemonic_15, block0_file, **{"--plan-id": "zz"})
        assert runner.invoke(app, args).exit_code == 1


class TestConfiguration:
    def test_invalid_max_inputs(self, mnemonic_15, block0_file):
        result = runner.invoke(
            app,
            ["convert", "-b", str(block0_file), "--mnemonic", mnemonic_15, "--max-inputs", "0"],
        )
        assert result.exit_code == 1

    def test_gap_limit_from_env(
        self, tmp_path, mnemonic_15, icarus_keys, icarus_address_at, make_block0
    ):
        path = tmp_path / "block0.bin"
        path.write_bytes(make_block0(legacy=[(icarus_address_at(icarus_keys, 0, 25), 900)]))
        args = ["funds", "-b", str(path), "--mnemonic", mnemonic_15, "-l", "ERROR"]

        assert "0 UTXOs" in runner.invoke(app, args).output
        result = runner.invoke(app, args, env={"JOR_WALLET_GAP_LIMIT": "30"})
        assert result.exit_code == 0, result.output
        assert "1 UTXOs" in result.output
