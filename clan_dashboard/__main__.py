from clan_dashboard.bot import main

main()
