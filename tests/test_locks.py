import threading

import pytest

from teachos.locks import Cpu, LockError, SleepLock, SpinLock


def test_acquire_and_release():
    cpu = Cpu()
    lock = SpinLock("test")
    lock.acquire(cpu)
    assert lock.holding(cpu)
    lock.release(cpu)
    assert not lock.holding(cpu)


def test_other_cpu_does_not_hold():
    lock = SpinLock("test")
    owner, other = Cpu(), Cpu()
    lock.acquire(owner)
    assert not lock.holding(other)
    lock.release(owner)


def test_reacquire_on_same_cpu_fails():
    cpu = Cpu()
    lock = SpinLock("test")
    lock.acquire(cpu)
    with pytest.raises(LockError):
        lock.acquire(cpu)


def test_release_without_holding_fails():
    with pytest.raises(LockError):
        SpinLock("test").release(Cpu())


def test_interrupts_off_while_held_and_restored():
    cpu = Cpu(interrupts_enabled=True)
    lock = SpinLock("test")
    lock.acquire(cpu)
    assert cpu.interrupts_enabled is False
    lock.release(cpu)
    assert cpu.interrupts_enabled is True
    assert cpu.ncli == 0


def test_interrupts_stay_off_if_they_were_off():
    cpu = Cpu(interrupts_enabled=False)
    lock = SpinLock("test")
    lock.acquire(cpu)
    lock.release(cpu)
    assert cpu.interrupts_enabled is False


def test_nested_locks_restore_only_at_outermost():
    cpu = Cpu()
    a, b = SpinLock("a"), SpinLock("b")
    a.acquire(cpu)
    b.acquire(cpu)
    b.release(cpu)
    assert cpu.interrupts_enabled is False
    a.release(cpu)
    assert cpu.interrupts_enabled is True


def test_pop_cli_without_push_fails():
    cpu = Cpu(interrupts_enabled=False)
    with pytest.raises(LockError, match="popcli"):
        cpu.pop_cli()


def test_pop_cli_while_interruptible_fails():
    cpu = Cpu()
    cpu.push_cli()
    cpu.interrupts_enabled = True
    with pytest.raises(LockError, match="interruptible"):
        cpu.pop_cli()


def test_spinlock_mutual_exclusion_between_threads():
    lock = SpinLock("counter")
    total = 0
    held_each_time = []
    cpus = [Cpu() for _ in range(4)]

    def worker(cpu):
        nonlocal total
        for _ in range(1000):
            lock.acquire(cpu)
            held_each_time.append(lock.holding(cpu))
            value = total
            total = value + 1
            lock.release(cpu)

    threads = [threading.Thread(target=worker, args=(cpu,)) for cpu in cpus]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert total == 4 * 1000
    assert held_each_time == [True] * (4 * 1000)
    assert [lock.holding(cpu) for cpu in cpus] == [False] * 4
    assert [cpu.ncli for cpu in cpus] == [0] * 4
    assert [cpu.interrupts_enabled for cpu in cpus] == [True] * 4

    after = Cpu()
    lock.acquire(after)
    assert lock.holding(after) is True
    lock.release(after)
    assert lock.holding(after) is False


def test_sleeplock_holding_by_pid():
    lock = SleepLock("disk")
    lock.acquire(1)
    assert lock.holding(1)
    assert not lock.holding(2)
    lock.release()
    assert not lock.holding(1)
    assert lock.pid == 0


def test_sleeplock_waiter_blocks_until_release():
    lock = SleepLock("disk")
    lock.acquire(1)
    acquired = threading.Event()

    def waiter():
        lock.acquire(2)
        acquired.set()

    t = threading.Thread(target=waiter)
    t.start()
    assert not acquired.wait(0.05)
    lock.release()
    assert acquired.wait(2)
    t.join(2)
    assert lock.holding(2)