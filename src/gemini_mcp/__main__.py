from gemini_mcp.cli import main

main()
