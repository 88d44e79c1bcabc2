"""执行引擎层（engine）。

- `backtest_runner`：单个策略程序的回测，以及同一回放上的成对对比；
- `evolution_engine`：种群对战与世代更替循环。

命令行入口由仓库根目录 `main.py` 统一承载。
"""
