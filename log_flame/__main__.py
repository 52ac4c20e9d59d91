from log_flame.cli import main

main()
