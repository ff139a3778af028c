"""
测试模块
========

包含所有单元测试。未安装本包时把 src 目录加入导入路径。
"""

from pathlib import Path
import sys

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))
