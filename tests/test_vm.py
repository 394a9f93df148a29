import pytest

import msvm
from ms_errors import VMError
from msvm import VirtualMachine, run


def output(bytecode, capsys):
    run(bytecode)
    return capsys.readouterr().out


def test_sub_pops_right_operand_first(capsys):
    assert output("PUSH 10\nPUSH 3\nSUB\nPRINT\n", capsys) == "7\n"


def test_add_and_mul(capsys):
    assert output("PUSH 2\nPUSH 3\nADD\nPUSH 4\nMUL\nPRINT\n", capsys) == "20\n"


def test_results_may_go_negative(capsys):
    assert output("PUSH 1\nPUSH 5\nSUB\nPRINT\n", capsys) == "-4\n"


def test_labels_index_executable_lines_only():
    vm = VirtualMachine()
    vm.load_text("start:\nPUSH 1\nmid:\n\nPRINT\nend:\n")
    assert vm.labels == {"start": 0, "mid": 1, "end": 2}
    assert len(vm.instructions) == 2


def test_jz_taken_on_zero(capsys):
    prog = "PUSH 0\nJZ skip\nPUSH 5\nPRINT\nskip:\nPUSH 9\nPRINT\n"
    assert output(prog, capsys) == "9\n"


def test_jz_falls_through_on_nonzero(capsys):
    prog = "PUSH 1\nJZ skip\nPUSH 5\nPRINT\nskip:\nPUSH 9\nPRINT\n"
    assert output(prog, capsys) == "5\n9\n"


def test_jnz_branches_on_nonzero(capsys):
    prog = "PUSH 3\nJNZ yes\nPUSH 1\nPRINT\nyes:\nPUSH 2\nPRINT\n"
    assert output(prog, capsys) == "2\n"
    prog = "PUSH 0\nJNZ yes\nPUSH 1\nPRINT\nyes:\nPUSH 2\nPRINT\n"
    assert output(prog, capsys) == "1\n2\n"


def test_jmp_skips_ahead(capsys):
    prog = "JMP over\nPUSH 1\nPRINT\nover:\nPUSH 2\nPRINT\n"
    assert output(prog, capsys) == "2\n"


def test_registers_round_trip(capsys):
    prog = "PUSH 41\nSTOR 3\nLOAD 3\nPUSH 1\nADD\nPRINT\n"
    assert output(prog, capsys) == "42\n"


def test_program_ends_when_pc_runs_off_the_end():
    vm = run("PUSH 1\nPUSH 2\n")
    assert vm.stack == [1, 2]
    assert vm.pc == 2


def test_undefined_label_fails():
    with pytest.raises(VMError, match="undefined label 'nowhere'"):
        run("JMP nowhere\n")


def test_conditional_jump_to_undefined_label_fails_even_when_not_taken():
    with pytest.raises(VMError, match="undefined label"):
        run("PUSH 1\nJZ nowhere\n")


def test_unset_register_fails():
    with pytest.raises(VMError, match="unset register 7"):
        run("LOAD 7\n")


def test_stack_underflow_fails():
    with pytest.raises(VMError, match="stack underflow"):
        run("PRINT\n")


def test_bad_line_fails_before_anything_runs(capsys):
    with pytest.raises(VMError, match="unrecognized instruction") as exc:
        run("PUSH 1\nPRINT\nBOGUS 3\n")
    assert exc.value.line == 3
    assert capsys.readouterr().out == ""


def test_exec_reads_file(tmp_path, capsys):
    bc = tmp_path / "prog.bc"
    bc.write_text("PUSH 6\nPUSH 7\nMUL\nPRINT\n")
    VirtualMachine().exec(str(bc))
    assert capsys.readouterr().out == "42\n"


def test_main_needs_an_argument(capsys):
    assert msvm.main([]) == 1
    assert "Usage: msvm" in capsys.readouterr().out


def test_main_reports_errors(tmp_path):
    bc = tmp_path / "bad.bc"
    bc.write_text("JMP lost\n")
    with pytest.raises(SystemExit) as exc:
        msvm.main([str(bc)])
    assert str(exc.value.code) == "error: undefined label 'lost'"
