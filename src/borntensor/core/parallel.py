#!/usr/bin/env python3
"""
进程间通信模块

Born 计算每次调用结束时做一次求和全归约。通信器只需提供 mpi4py
``Comm`` 的一个子集：``Allreduce(sendbuf, recvbuf)``（求和）、
``Get_rank()``、``Get_size()`` 与 ``Barrier()``。

- :class:`SerialCommunicator`：单进程通信器，归约即复制
- :func:`world_communicator`：``mpi4py.MPI.COMM_WORLD``（需安装 ``mpi`` 可选依赖）

.. moduleauthor:: Gilbert Young
"""

import logging

import numpy as np

try:
    from mpi4py import MPI
except ImportError:
    MPI = None

logger = logging.getLogger(__name__)


class SerialCommunicator:
    """单进程通信器"""

    def Get_rank(self) -> int:  # noqa: N802
        return 0

    def Get_size(self) -> int:  # noqa: N802
        return 1

    def Barrier(self) -> None:  # noqa: N802
        return None

    def Allreduce(self, sendbuf, recvbuf) -> None:  # noqa: N802
        """单进程的求和归约：``recvbuf[:] = sendbuf``"""
        send = np.asarray(sendbuf)
        if send.shape != np.shape(recvbuf):
            raise ValueError(
                f"Allreduce 缓冲区形状不一致: {send.shape} vs {np.shape(recvbuf)}"
            )
        recvbuf[...] = send


def world_communicator():
    """返回 MPI 全局通信器

    Raises
    ------
    RuntimeError
        未安装 mpi4py
    """
    if MPI is None:
        raise RuntimeError("mpi4py required: pip install borntensor[mpi]")
    comm = MPI.COMM_WORLD
    logger.debug(f"MPI world communicator: rank {comm.Get_rank()}/{comm.Get_size()}")
    return comm


def default_communicator(use_mpi: bool = False):
    """按需选择通信器：``use_mpi`` 为 True 时使用 MPI，否则单进程"""
    if use_mpi:
        return world_communicator()
    return SerialCommunicator()
